#!/usr/bin/env python3
"""
Command-line front end for the README generation pipeline.

Reads repository context text (a file, or stdin), generates a README and
writes the markdown to stdout or a file. Progress and errors go to stderr.

Usage:
    readmegen --context repo_context.md
    readmegen --context repo_context.md --style enterprise --fallback
    cat repo_context.md | readmegen --stream --model openai/gpt-4o

Exit codes:
    0  README written
    1  unknown failure
    2  authentication / configuration problem
    3  rate limited
    4  network failure
    5  output never passed validation
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .core.config import Settings
from .core.logging_config import setup_logging
from .exceptions import ErrorKind, GenerationError
from .schemas import GenerationConfig, GenerationRequest, ReadmeStyle
from .services import FallbackOrchestrator, GenerationClient

logger = logging.getLogger("readmegen.cli")

EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.UNKNOWN: 1,
    ErrorKind.AUTH_ERROR: 2,
    ErrorKind.RATE_LIMIT: 3,
    ErrorKind.NETWORK_ERROR: 4,
    ErrorKind.INVALID_OUTPUT: 5,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="readmegen",
        description="Generate a README from repository context text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Credentials are read from README_API_KEY, BYTEZ_API_KEY or\n"
            "OPENAI_API_KEY (a .env file in the working directory is loaded)."
        ),
    )
    parser.add_argument(
        "--context", default="-",
        help="File holding the repository context ('-' for stdin, the default)",
    )
    parser.add_argument(
        "--output", "-o", default=None,
        help="Write the README here instead of stdout",
    )
    parser.add_argument(
        "--style", choices=[s.value for s in ReadmeStyle], default=ReadmeStyle.STANDARD.value,
        help="Level of detail (default: standard)",
    )
    parser.add_argument(
        "--architecture", action=argparse.BooleanOptionalAction, default=None,
        help="Require a Mermaid architecture diagram (default: per style)",
    )
    parser.add_argument(
        "--security", action=argparse.BooleanOptionalAction, default=None,
        help="Require a Security section (default: per style)",
    )
    parser.add_argument(
        "--contributing", action=argparse.BooleanOptionalAction, default=None,
        help="Require Contributing guidelines (default: per style)",
    )
    parser.add_argument("--model", default=None, help="Model to use (default: DEFAULT_MODEL)")
    parser.add_argument("--temperature", type=float, default=None, help="Sampling temperature, 0-2")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--stream", action="store_true",
        help="Print fragments as they arrive (no retries)",
    )
    mode.add_argument(
        "--fallback", action="store_true",
        help="Try the FALLBACK_MODELS chain instead of a single model",
    )

    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument(
        "--log-format", choices=["json", "text"], default=None,
        help="Override LOG_FORMAT (default for the CLI: text)",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> GenerationConfig:
    """Style preset, with any explicit flags applied on top."""
    overrides = {
        name: value
        for name, value in (
            ("include_architecture", args.architecture),
            ("include_security", args.security),
            ("include_contributing", args.contributing),
            ("model", args.model),
            ("temperature", args.temperature),
        )
        if value is not None
    }
    overrides["streaming"] = args.stream
    return GenerationConfig.for_style(args.style, **overrides)


def _read_context(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    setup_logging(
        args.log_level or settings.log_level,
        args.log_format or "text",
        secrets=(settings.resolve_api_key(),),
    )

    try:
        context_text = _read_context(args.context)
    except OSError as e:
        print(f"[Error] Cannot read context from {args.context}: {e}", file=sys.stderr)
        return EXIT_CODES[ErrorKind.UNKNOWN]
    if not context_text.strip():
        print("[Error] Repository context is empty", file=sys.stderr)
        return EXIT_CODES[ErrorKind.UNKNOWN]

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    request = GenerationRequest(context_text=context_text, config=config)
    client = GenerationClient(settings=settings)

    try:
        if args.stream:
            def echo(chunk: str) -> None:
                sys.stdout.write(chunk)
                sys.stdout.flush()

            document = client.generate_streaming(
                request, on_chunk=None if args.output else echo,
            )
            if not args.output:
                sys.stdout.write("\n")
        elif args.fallback:
            result = FallbackOrchestrator(client=client, settings=settings).generate_with_fallback(request)
            document = result.document
            print(f"[Info] Generated with {result.model_used}", file=sys.stderr)
        else:
            document = client.generate(request)
    except GenerationError as e:
        print(f"[Error] {e.user_message}", file=sys.stderr)
        print(f"  {e.kind.value}: {e.message}", file=sys.stderr)
        return EXIT_CODES[e.kind]

    if args.output:
        Path(args.output).write_text(document + "\n", encoding="utf-8")
        print(f"[Info] README written to {args.output}", file=sys.stderr)
    elif not args.stream:
        sys.stdout.write(document + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
