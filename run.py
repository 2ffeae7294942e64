#!/usr/bin/env python3
"""
Voxa - command interpretation pipeline.
Entry point: reads transcript updates from stdin, one per line, and prints
each batch result as JSON on stdout.

Usage:
    python run.py                         # Cerebras adapter + local parser
    python run.py --llm off               # Local pattern parser only
    python run.py --context windows.json  # Start from a UI-context snapshot
    echo "Open a note. Close it." | python run.py --llm off

A line that is a JSON object is taken as a full update
({"transcript", "pastTranscript"?, "currentDirective"?}); anything else is the
transcript text itself.
"""
import argparse
import asyncio
import json
import sys

from voxa.core.config import Config
from voxa.core.logger import get_logger, init_logger


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Voxa - turn transcripts into window tool calls",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py                          # Cerebras adapter (needs CEREBRAS_API_KEY)
  python run.py --llm off                # Local pattern parser only
  python run.py --context windows.json   # Seed the window registry
        """
    )

    parser.add_argument(
        "--llm",
        type=str,
        default=Config.LLM_MODE,
        choices=["cerebras", "off"],
        help=f"LLM mode: cerebras or off (default: {Config.LLM_MODE})"
    )
    parser.add_argument(
        "--model",
        type=str,
        default=Config.LLM_MODEL,
        help=f"Model name (default: {Config.LLM_MODEL})"
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=Config.LLM_BASE_URL,
        help=f"Chat-completions API base URL (default: {Config.LLM_BASE_URL})"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=Config.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        default=Config.QUIET_MODE,
        help="Hide pipeline internals in the log"
    )
    parser.add_argument(
        "--context",
        type=str,
        default=None,
        metavar="FILE",
        help="JSON UI-context snapshot to start from"
    )

    return parser.parse_args(argv)


def _read_update(line: str):
    text = line.strip()
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError:
            return text
        if isinstance(data, dict):
            return data
    return text


async def _serve(pipeline) -> None:
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            break
        if not line.strip():
            continue
        batch = await pipeline.process_transcript(_read_update(line))
        print(json.dumps(batch.to_dict(), ensure_ascii=False, default=str), flush=True)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)

    init_logger(args.log_level, quiet_mode=args.quiet)
    logger = get_logger()

    from voxa.brain.chat_client import ChatCompletionsClient
    from voxa.brain.task_parser import TaskParser
    from voxa.core.orchestrator import Pipeline
    from voxa.core.outbound import LIFECYCLE_TYPES

    adapter = None
    if args.llm != "off":
        if not Config.LLM_API_KEY:
            logger.warning("[LLM] no API key set (VOXA_LLM_API_KEY / CEREBRAS_API_KEY); local parser only")
        else:
            client = ChatCompletionsClient(base_url=args.base_url, api_key=Config.LLM_API_KEY, timeout=Config.LLM_TIMEOUT)
            adapter = TaskParser(client=client, model=args.model, enabled=True)

    print("=" * 60, file=sys.stderr)
    print("  Voxa", file=sys.stderr)
    print("=" * 60, file=sys.stderr)
    print(f"  LLM Mode: {args.llm if adapter else 'off'}", file=sys.stderr)
    if adapter:
        print(f"  LLM Model: {args.model}", file=sys.stderr)
        print(f"  LLM URL: {args.base_url}", file=sys.stderr)
    print(f"  History: {Config.ACTION_HISTORY_SIZE} actions / {Config.TRANSCRIPT_MAX_CHARS} chars", file=sys.stderr)
    print(f"  Log Level: {args.log_level}", file=sys.stderr)
    print("=" * 60, file=sys.stderr)

    pipeline = Pipeline(adapter=adapter)

    if args.context:
        try:
            with open(args.context, "r", encoding="utf-8") as f:
                views = pipeline.push_context(json.load(f))
        except (OSError, ValueError) as e:
            logger.error(f"Could not load context {args.context}: {e}")
            return 1
        logger.info(f"Loaded {len(views)} window(s) from {args.context}")

    def _log_outbound(msg):
        if msg["type"] in LIFECYCLE_TYPES:
            logger.debug(f"[DISPATCH] {msg['type']} {msg['data'].get('tool')} {msg['data'].get('taskId')}")
        elif msg["type"] != "batch_result":
            logger.info(f"[DISPATCH] -> host {msg['type']}")

    pipeline.channel.subscribe(_log_outbound)

    try:
        asyncio.run(_serve(pipeline))
        return 0
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
