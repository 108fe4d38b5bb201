from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Sequence

from .config import RuntimeSecrets, config_sha256, load_config, resolve_runtime_secrets
from .errors import ConfigError, ErrorKind, FetchError
from .event_log import EventLog
from .service import build_fetch_service, normalize_handle

_EXIT_CODES = {
    ErrorKind.VALIDATION: 2,
    ErrorKind.TIMEOUT: 3,
    ErrorKind.PROVIDER_ERROR: 3,
    ErrorKind.RATE_LIMIT: 5,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ig_fetch")

    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser(
        "fetch",
        help="Fetch recent posts for an Instagram handle and print them as JSON.",
    )
    fetch.add_argument(
        "--config",
        required=True,
        help="Path to YAML config file.",
    )
    fetch.add_argument(
        "--handle",
        required=True,
        help="Account handle, with or without a leading @.",
    )
    fetch.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of posts (defaults to fetch.default_limit).",
    )
    fetch.add_argument(
        "--offline",
        action="store_true",
        help="Use the built-in network-free provider instead of the configured one.",
    )
    fetch.add_argument(
        "--log",
        default=None,
        help="Append JSONL events to this file instead of stderr.",
    )
    fetch.set_defaults(_handler=_cmd_fetch)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _open_log(path: str | None) -> EventLog:
    if path:
        return EventLog.open(path)
    return EventLog.stderr(min_level="WARN")


async def _run_fetch(args: argparse.Namespace, log: EventLog) -> int:
    cfg = load_config(args.config)

    if bool(getattr(args, "offline", False)):
        cfg = cfg.model_copy(update={"provider": "offline"})
        secrets = RuntimeSecrets(provider="offline", token="")
    else:
        secrets = resolve_runtime_secrets(cfg)

    log.info(
        "config_loaded",
        config_path=str(args.config),
        provider=cfg.provider,
        config_sha256=config_sha256(cfg),
    )

    limit = args.limit if args.limit is not None else int(cfg.fetch.default_limit)

    service = build_fetch_service(cfg, secrets, logger=log)
    try:
        posts = await service.fetch_posts(args.handle, limit)
    finally:
        await service.aclose()

    payload = {
        "status": "success",
        "data": {
            "username": normalize_handle(args.handle, max_length=int(cfg.fetch.max_handle_length)),
            "posts": [p.to_dict() for p in posts],
        },
    }
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def _cmd_fetch(args: argparse.Namespace) -> int:
    with _open_log(getattr(args, "log", None)) as log:
        log.info("fetch_command_started", handle=str(args.handle))
        try:
            return asyncio.run(_run_fetch(args, log))
        except Exception as e:
            log.exception("fetch_command_failed", exc=e)
            raise


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except FetchError as e:
        _eprint(f"{e.kind.value}: {e.message}")
        return _EXIT_CODES.get(e.kind, 1)
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
