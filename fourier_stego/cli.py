import argparse
import logging
import sys
from pathlib import Path

from .decoder import Decoder
from .encoder import Encoder, default_output_path
from .errors import StegoError
from .framing import TERMINATOR
from .metrics import compute_snr_db
from .protocol import DEFAULT_PARAMS
from .streams import describe


def cmd_encode(args: argparse.Namespace):
    source = str(args.input)
    out = args.out or default_output_path(args.input)
    encoder = Encoder(DEFAULT_PARAMS)
    if args.msg is not None:
        report = encoder.encode_text(source, args.msg, out)
        what = f'"{args.msg}"'
    else:
        payload = Path(args.msg_file).read_bytes()
        report = encoder.encode_bytes(source, payload, out)
        what = f"{len(payload)} bytes from {args.msg_file}"

    print(f"Successfully encoded {what} into {report.out_path}")
    print(f"Blocks: {report.blocks_total} total, {report.blocks_active} used, {report.blocks_silent} silent")

    if args.snr_against:
        snr = compute_snr_db(source, report.out_path)
        print(f"SNR: {snr:.2f} dB")
    if args.plot:
        # matplotlib is only needed here
        from .visualize import plot_spectrogram_comparison
        plot_spectrogram_comparison(source, report.out_path, save_path=str(args.plot))
        print(f"Wrote {args.plot}")


def cmd_decode(args: argparse.Namespace):
    decoder = Decoder(DEFAULT_PARAMS)
    if args.bytes is None:
        print(decoder.decode_text(str(args.input)))
        return
    payload = decoder.decode_bytes(str(args.input), args.bytes)
    if args.out_file:
        Path(args.out_file).write_bytes(payload)
        print(f"Wrote output to {args.out_file}")
    else:
        # try decoding utf-8
        try:
            print(payload.rstrip(TERMINATOR).decode('utf-8'))
        except UnicodeDecodeError:
            print(payload)


def cmd_capacity(args: argparse.Namespace):
    blocks = Encoder(DEFAULT_PARAMS).capacity(str(args.input))
    print(f"Eligible blocks: {blocks} ({blocks // 8} bytes)")


def cmd_info(args: argparse.Namespace):
    info = describe(args.input)
    print(f"File: {info['path']}")
    print(f"Channels: {info['channels']}")
    print(f"Sample rate: {info['sample_rate']} Hz")
    print(f"Bit depth: {info['bits']} ({'signed' if info['signed'] else 'unsigned'}, {info['byte_order']}-endian)")
    print(f"Frames: {info['frames']}")
    print(f"Duration: {info['duration_s']:.2f} s")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Fourier-domain audio steganography")
    p.add_argument('-v', '--verbose', action='count', default=0, help='More logging (-vv for per-block detail)')
    sub = p.add_subparsers(dest='cmd', required=True)

    pe = sub.add_parser('encode', help='Hide a message in a WAV, AIFF or AU file')
    pe.add_argument('--in', dest='input', required=True, type=Path)
    pe.add_argument('--out', type=Path, help='Output file, .wav, .aif, .aiff or .au (default: <input>-Encoded.wav)')
    gmsg = pe.add_mutually_exclusive_group(required=True)
    gmsg.add_argument('--msg', type=str, help='Message text to embed')
    gmsg.add_argument('--msg-file', type=Path, help='Path to file whose bytes to embed')
    pe.add_argument('--snr-against', action='store_true', help='Print SNR vs cover after embedding')
    pe.add_argument('--plot', type=Path, help='Save a cover/stego spectrogram comparison to this PNG')
    pe.set_defaults(func=cmd_encode)

    pd = sub.add_parser('decode', help='Recover a message from a WAV, AIFF or AU file')
    pd.add_argument('--in', dest='input', required=True, type=Path)
    pd.add_argument('--bytes', type=int, help='Payload size in bytes (default: read text up to its terminator)')
    pd.add_argument('--out-file', type=Path, help='Write recovered bytes to file')
    pd.set_defaults(func=cmd_decode)

    pc = sub.add_parser('capacity', help='Count blocks able to carry a bit')
    pc.add_argument('--in', dest='input', required=True, type=Path)
    pc.set_defaults(func=cmd_capacity)

    pi = sub.add_parser('info', help='Show the audio format of a WAV, AIFF or AU file')
    pi.add_argument('--in', dest='input', required=True, type=Path)
    pi.set_defaults(func=cmd_info)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        args.func(args)
    except (StegoError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
