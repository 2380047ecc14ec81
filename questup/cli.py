"""Command-line entry point for exam generation.

Exit Codes:
    0 - Success
    2 - Generation failed (transient, malformed response, unclassified)
    3 - Configuration or input error
    5 - Billing/tier problem with the API key
    6 - Authentication failure (missing or rejected API key)
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .config import settings
from .credentials import TerminalKeyDialog, default_resolver
from .errors import (
    AuthError,
    AuthMissingError,
    QuestUpError,
    QuotaError,
    ValidationError,
)
from .files import load_reference_files
from .logging_config import setup_logging
from .models import MAX_QUESTION_COUNT, MIN_QUESTION_COUNT, Grade, Language, Question
from .service import ExamService, describe_failure

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_COMPLETE_FAILURE = 2
EXIT_CONFIG_ERROR = 3
EXIT_BILLING_ERROR = 5
EXIT_AUTH_ERROR = 6


def exit_code_for(error: BaseException) -> int:
    if isinstance(error, QuotaError):
        return EXIT_BILLING_ERROR
    if isinstance(error, (AuthError, AuthMissingError)):
        return EXIT_AUTH_ERROR
    if isinstance(error, ValidationError):
        return EXIT_CONFIG_ERROR
    return EXIT_COMPLETE_FAILURE


def parse_answer(value: str) -> Optional[int]:
    """Parse one answer: an option index, or "-" for unanswered."""
    if value == "-":
        return None
    try:
        return int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(
            f"answer must be an option index or '-', got {value!r}"
        ) from e


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="questup",
        description="Generate multiple-choice exams from reference documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 5 English questions for M3 from two handouts
  questup generate chapter1.pdf chapter2.png --grade M3 --language English --count 5

  # Follow-up exam on weak topics
  questup generate notes.pdf --grade G6 --weak-topic "เศษส่วน" --weak-topic "ทศนิยม"

  # Analyze answers to a saved exam ("-" = unanswered)
  questup analyze exam.json --answers 0 2 - 1 3
        """,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=settings.log_file,
        help="Log file path (default: console only)",
    )
    parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Never prompt for an API key; fail if API_KEY is not set",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate an exam")
    generate.add_argument("files", nargs="+", type=Path, help="Reference documents")
    generate.add_argument(
        "--grade",
        choices=[g.value for g in Grade],
        default=Grade.G1.value,
        help="Target grade (default: G1)",
    )
    generate.add_argument(
        "--language",
        choices=[lang.value for lang in Language],
        default=Language.THAI.value,
        help="Language of questions and options (default: Thai)",
    )
    generate.add_argument(
        "--count",
        type=int,
        default=10,
        help=f"Number of questions, {MIN_QUESTION_COUNT}-{MAX_QUESTION_COUNT} (default: 10)",
    )
    generate.add_argument(
        "--weak-topic",
        action="append",
        dest="weak_topics",
        default=None,
        help="Topic to prioritize (repeatable)",
    )
    generate.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write questions to this JSON file instead of stdout",
    )

    analyze = subparsers.add_parser("analyze", help="Analyze answers to an exam")
    analyze.add_argument("exam", type=Path, help="JSON file written by 'generate'")
    analyze.add_argument(
        "--answers",
        nargs="+",
        type=parse_answer,
        required=True,
        help="Selected option index per question, '-' for unanswered",
    )

    return parser.parse_args(argv)


def _write_json(payload: object, output: Optional[Path]) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output is None:
        print(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")
        logger.info(f"Wrote {output}")


def _load_exam(path: Path) -> List[Question]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return [Question.model_validate(item) for item in data]
    except (OSError, ValueError, TypeError) as e:
        raise ValidationError(f"Cannot read exam file {path}: {e}", field="exam") from e


async def _execute(service: ExamService, args: argparse.Namespace) -> None:
    if args.command == "generate":
        files = load_reference_files(args.files)
        questions = await service.generate_exam(
            files, args.grade, args.language, args.count, args.weak_topics
        )
        _write_json([q.model_dump(by_alias=True) for q in questions], args.output)
    else:
        questions = _load_exam(args.exam)
        analysis = await service.analyze_results(questions, args.answers)
        _write_json(analysis.model_dump(by_alias=True), None)


async def run(args: argparse.Namespace) -> int:
    """Run the chosen command.

    When a key dialog is available, a missing or rejected key prompts the
    user for another one and the command is retried once.
    """
    dialog = None if args.no_prompt else TerminalKeyDialog()
    service = ExamService(resolver=default_resolver(dialog))

    try:
        await _execute(service, args)
    except (AuthError, AuthMissingError) as e:
        if dialog is None:
            raise
        logger.warning(f"{type(e).__name__}: {e}; asking for another API key")
        print(describe_failure(e).message, file=sys.stderr)
        await service.resolver.reselect()
        await _execute(service, args)
    return EXIT_SUCCESS


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(
        log_level="DEBUG" if args.verbose else settings.log_level,
        log_file=args.log_file,
    )

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return EXIT_COMPLETE_FAILURE
    except QuestUpError as e:
        notice = describe_failure(e)
        logger.error(f"{type(e).__name__}: {e}")
        print(notice.message, file=sys.stderr)
        return exit_code_for(e)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(describe_failure(e).message, file=sys.stderr)
        return EXIT_COMPLETE_FAILURE


if __name__ == "__main__":
    sys.exit(main())
