import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest

from fourier_stego.cli import main
from fourier_stego.metrics import compute_ber, compute_sample_change_stats, compute_snr_db
from fourier_stego.visualize import block_embed_magnitudes, plot_block_magnitudes


class TestCli:

    def test_encode_then_decode(self, sine_wav, tmp_path, capsys):
        out = tmp_path / "stego.wav"
        assert main(["encode", "--in", str(sine_wav), "--out", str(out), "--msg", "HI", "--snr-against"]) == 0
        printed = capsys.readouterr().out
        assert "Successfully encoded" in printed
        assert "SNR:" in printed

        assert main(["decode", "--in", str(out)]) == 0
        assert capsys.readouterr().out.strip() == "HI"

    def test_default_output_name(self, sine_wav, capsys):
        assert main(["encode", "--in", str(sine_wav), "--msg", "x"]) == 0
        assert sine_wav.with_name("sine-Encoded.wav").exists()

    def test_binary_file_round_trip(self, sine_wav, tmp_path, capsys):
        payload = tmp_path / "payload.bin"
        payload.write_bytes(b"\x01\x02\x03")
        out = tmp_path / "stego.wav"
        recovered = tmp_path / "recovered.bin"
        assert main(["encode", "--in", str(sine_wav), "--out", str(out), "--msg-file", str(payload)]) == 0
        assert main(["decode", "--in", str(out), "--bytes", "3", "--out-file", str(recovered)]) == 0
        assert recovered.read_bytes() == b"\x01\x02\x03"

    def test_capacity_and_info(self, sine_wav, capsys):
        assert main(["capacity", "--in", str(sine_wav)]) == 0
        assert "Eligible blocks: 53" in capsys.readouterr().out
        assert main(["info", "--in", str(sine_wav)]) == 0
        printed = capsys.readouterr().out
        assert "Channels: 1" in printed
        assert "Bit depth: 16" in printed

    def test_failure_exit_status(self, silent_wav, tmp_path, capsys):
        out = tmp_path / "stego.wav"
        assert main(["encode", "--in", str(silent_wav), "--out", str(out), "--msg", "HI"]) == 1
        assert "too short" in capsys.readouterr().err
        assert not out.exists()

    def test_unsupported_output_exit_status(self, sine_wav, tmp_path, capsys):
        assert main(["encode", "--in", str(sine_wav), "--out", str(tmp_path / "x.mp3"), "--msg", "HI"]) == 1
        assert "Unrecognised file format" in capsys.readouterr().err

    def test_programming_errors_propagate(self, sine_wav, tmp_path):
        with pytest.raises(ValueError, match="NUL"):
            main(["encode", "--in", str(sine_wav), "--out", str(tmp_path / "x.wav"), "--msg", "a\x00b"])

    def test_aiff_output(self, sine_wav, tmp_path, capsys):
        out = tmp_path / "stego.aiff"
        assert main(["encode", "--in", str(sine_wav), "--out", str(out), "--msg", "HI"]) == 0
        capsys.readouterr()
        assert main(["info", "--in", str(out)]) == 0
        assert "big-endian" in capsys.readouterr().out
        assert main(["decode", "--in", str(out)]) == 0
        assert capsys.readouterr().out.strip() == "HI"

    def test_usage_error(self):
        with pytest.raises(SystemExit) as exc:
            main(["encode", "--in", "x.wav"])
        assert exc.value.code == 2


class TestMetrics:

    def test_identical_files(self, sine_wav):
        stats = compute_sample_change_stats(str(sine_wav), str(sine_wav))
        assert stats["samples_changed"] == 0
        assert stats["max_abs_diff"] == 0
        assert compute_snr_db(str(sine_wav), str(sine_wav)) > 100.0

    def test_ber(self):
        assert compute_ber(np.array([1, 0, 1, 1]), np.array([1, 1, 1, 0])) == 0.5
        with pytest.raises(ValueError):
            compute_ber(np.zeros(3), np.zeros(4))

    def test_stego_changes_only_reference_channel(self, stereo_wav, tmp_path):
        out = tmp_path / "stego.wav"
        assert main(["encode", "--in", str(stereo_wav), "--out", str(out), "--msg", "HI"]) == 0
        stats = compute_sample_change_stats(str(stereo_wav), str(out))
        assert stats["changed_per_channel"][0] > 0
        assert stats["changed_per_channel"][1] == 0


class TestVisualize:

    def test_block_magnitudes_follow_bits(self, sine_wav, tmp_path):
        out = tmp_path / "stego.wav"
        assert main(["encode", "--in", str(sine_wav), "--out", str(out), "--msg", "HI"]) == 0
        mags, active = block_embed_magnitudes(str(out))
        assert mags.size == 53
        assert active.all()
        # "H" = 01001000
        assert (mags[:8] > 7.5).astype(int).tolist() == [0, 1, 0, 0, 1, 0, 0, 0]

    def test_plots_are_written(self, sine_wav, tmp_path):
        out = tmp_path / "stego.wav"
        plot = tmp_path / "figs" / "spec.png"
        assert main(["encode", "--in", str(sine_wav), "--out", str(out), "--msg", "HI", "--plot", str(plot)]) == 0
        assert plot.exists()
        blocks = tmp_path / "figs" / "blocks.png"
        plot_block_magnitudes(str(out), save_path=str(blocks))
        assert blocks.exists()
