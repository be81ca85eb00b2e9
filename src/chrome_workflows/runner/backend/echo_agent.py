"""Local stand-in agent for runner and CLI integration tests."""

from __future__ import annotations

import argparse
import sys


def main(argv: list[str] | None = None) -> int:
    """Echo the received prompt and exit with the requested code."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--exit-code", type=int, default=0)
    parser.add_argument("--stderr", default=None)
    parser.add_argument("prompt")
    args = parser.parse_args(argv)

    print(f"echo-agent received {len(args.prompt)} chars")
    print(args.prompt)
    if args.stderr:
        print(args.stderr, file=sys.stderr)
    return args.exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
