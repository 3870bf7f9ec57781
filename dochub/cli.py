"""Command line entry point: ``dochub fetch|batch|check-env|serve``."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Mapping, Sequence

import uvicorn

from dochub.config import ENV_API_KEY, check_environment, load_runtime_env
from dochub.core.models import BatchOptions, ProcessedArticle, normalize_document_id
from dochub.core.properties import extract_status
from dochub.errors import DocHubError
from dochub.logging import configure_logging, get_logger
from dochub.processor import ArticleProcessor

logger = get_logger(__name__)

PROCESSABLE_STATUSES = ("Preview", "Published")
DEFAULT_OUTPUT_DIR = "./output"
DEFAULT_CLI_IMAGE_DIR = "./output/images"
DEFAULT_CLI_IMAGE_PREFIX = "/images"


def write_outputs(article: ProcessedArticle, article_id: str, output_dir: Path) -> tuple[Path, Path]:
    """Write ``<id>.md`` and ``<id>.json`` for a processed article."""

    output_dir.mkdir(parents=True, exist_ok=True)
    document_path = output_dir / f"{article_id}.md"
    metadata_path = output_dir / f"{article_id}.json"
    document_path.write_text(article.document, encoding="utf-8")

    payload = article.metadata.to_dict()
    payload.update(
        {
            "processedAt": article.processed_at.isoformat(),
            "processingTimeMs": article.processing_time_ms,
            "media": [ref.to_dict() for ref in article.media],
        }
    )
    metadata_path.write_text(
        json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8"
    )
    return document_path, metadata_path


def _build_processor(env: Mapping[str, str], args: argparse.Namespace) -> ArticleProcessor:
    return ArticleProcessor.from_env(
        env,
        image_directory=args.image_dir,
        image_url_prefix=args.image_prefix,
    )


async def _fetch(args: argparse.Namespace, env: Mapping[str, str]) -> int:
    processor = _build_processor(env, args)
    article_id = normalize_document_id(args.article_id)

    if not args.force:
        metadata = await processor.fetcher.fetch_metadata(article_id)
        status = extract_status(metadata.properties)
        if status is not None and status not in PROCESSABLE_STATUSES:
            print(f"Article {article_id} skipped (Status: {status})")
            return 0

    print(f"Processing article: {article_id}")
    article = await processor.process_article(article_id)
    document_path, metadata_path = write_outputs(
        article, article_id, Path(args.output_dir)
    )
    print("Article processed successfully:")
    print(f"   Document: {document_path}")
    print(f"   Metadata: {metadata_path}")
    print(f"   Media: {len(article.media)} files")
    print(f"   Processing time: {article.processing_time_ms}ms")
    return 0


async def _batch(args: argparse.Namespace, env: Mapping[str, str]) -> int:
    processor = _build_processor(env, args)
    article_ids = [normalize_document_id(raw) for raw in args.article_ids]

    def _progress(completed: int, total: int) -> None:
        print(f"[{completed}/{total}] processed")

    def _error(error: Exception, article_id: str) -> None:
        print(f"Failed: {article_id}: {error}")

    options = BatchOptions(
        concurrency=args.concurrency,
        continue_on_error=not args.fail_fast,
        on_progress=_progress,
        on_error=_error,
    )
    if args.retry:
        result = await processor.process_many_with_retry(article_ids, options)
    else:
        result = await processor.process_many(article_ids, options)

    output_dir = Path(args.output_dir)
    for article in result.successful:
        write_outputs(article, article.metadata.id, output_dir)
    print(
        f"Processed {result.total_processed} articles in {result.total_time_ms}ms: "
        f"{len(result.successful)} succeeded, {len(result.failed)} failed"
    )
    return 0 if not result.failed else 1


def _check_env(env: Mapping[str, str]) -> int:
    report = check_environment(env)
    payload: dict[str, Any] = {
        "valid": report.valid,
        "missing": list(report.missing),
        "warnings": list(report.warnings),
    }
    print(json.dumps(payload, indent=2))
    return 0 if report.valid else 1


def _add_output_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--output-dir", default=DEFAULT_OUTPUT_DIR)
    parser.add_argument("--image-dir", default=DEFAULT_CLI_IMAGE_DIR)
    parser.add_argument("--image-prefix", default=DEFAULT_CLI_IMAGE_PREFIX)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dochub", description="Convert Notion articles into markdown documents"
    )
    parser.add_argument("--log-level", default="WARNING")
    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser("fetch", help="Process a single article")
    fetch.add_argument("article_id")
    fetch.add_argument(
        "--force",
        action="store_true",
        help="Process the article regardless of its Status property",
    )
    _add_output_options(fetch)

    batch = commands.add_parser("batch", help="Process several articles")
    batch.add_argument("article_ids", nargs="+")
    batch.add_argument("--concurrency", type=int, default=3)
    batch.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop scheduling further articles after the first failure",
    )
    batch.add_argument(
        "--retry", action="store_true", help="Retry each article on failure"
    )
    _add_output_options(batch)

    commands.add_parser("check-env", help="Report missing environment variables")

    serve = commands.add_parser("serve", help="Run the webhook relay")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def _cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    env = load_runtime_env()

    if args.command == "check-env":
        return _check_env(env)
    if args.command == "serve":
        uvicorn.run("dochub.main:app", host=args.host, port=args.port)
        return 0

    if args.command == "fetch" and not str(args.article_id).strip():
        print("Article ID must be a valid non-empty string")
        return 1
    if not str(env.get(ENV_API_KEY) or "").strip():
        print(f"{ENV_API_KEY} environment variable is required")
        return 1

    runner = _fetch if args.command == "fetch" else _batch
    try:
        return asyncio.run(runner(args, env))
    except (DocHubError, ValueError) as exc:
        logger.error(
            "Command %s failed: %s",
            args.command,
            exc,
            extra={"event": "cli.failed", "command": args.command},
        )
        print(f"Failed to process: {exc}")
        return 1


def main() -> None:
    raise SystemExit(_cli())


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
