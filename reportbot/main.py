"""reportbot entry point.

Polls the forum report API on a fixed interval and posts new or updated
reports to Discord. Usage: reportbot [--config config.yaml] [--once] [--dry-run].
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from reportbot.adapters.xenforo import XenForoReportClient
from reportbot.config import AppConfig, ConfigurationError, load_config
from reportbot.logging import ReportBotLogging
from reportbot.notifier import DiscordNotifier, LogNotifier, NotifierError, ReportNotifier
from reportbot.scheduler import run_poll_loop
from reportbot.services.report_service import ReportService
from reportbot.store.report_store import ReportRepository

LOG = logging.getLogger("reportbot.main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="reportbot",
        description="reportbot - relay forum moderation reports to Discord",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to YAML config file (optional; env vars are enough)",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only load and validate config, then exit",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one sync cycle (no notifications) and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log report alerts instead of posting them to Discord",
    )
    return parser.parse_args(argv)


def build_client(config: AppConfig) -> XenForoReportClient:
    return XenForoReportClient(
        api_url=config.report_api_url,
        api_key=config.report.api_key or "",
        max_retries=config.report.max_retries,
        retry_delay=config.report.retry_delay_seconds,
        timeout=config.report.timeout_seconds,
    )


def build_notifier(config: AppConfig, dry_run: bool = False) -> ReportNotifier:
    """Discord notifier with a validated channel, or LogNotifier for dry runs."""
    if dry_run:
        return LogNotifier()
    notifier = DiscordNotifier(
        token=config.discord.api_key or "",
        channel_id=config.discord.report_channel_id or "",
        api_url=config.discord.api_url,
        timeout=config.report.timeout_seconds,
    )
    notifier.validate_channel()
    return notifier


def _install_signal_handlers(stop: threading.Event) -> None:
    """Stop the loop between cycles on SIGINT/SIGTERM so a flush is never cut short."""
    if threading.current_thread() is not threading.main_thread():
        return

    def _handle(signum: int, _frame: object) -> None:
        LOG.info("Received signal %s, stopping after the current cycle", signum)
        stop.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def run_bot(
    config: AppConfig,
    once: bool = False,
    dry_run: bool = False,
    stop_event: threading.Event | None = None,
) -> None:
    """Build the components from config and run the poll loop."""
    ReportBotLogging(config.logging).setup()

    repository = ReportRepository(config.store.path)
    service = ReportService(
        source=build_client(config),
        repository=repository,
        notifier=build_notifier(config, dry_run=dry_run),
        report_url=config.report_url,
    )

    stop = stop_event or threading.Event()
    _install_signal_handlers(stop)
    LOG.info(
        "reportbot started | api=%s | store=%s (%s reports) | interval=%ss | dry_run=%s",
        config.report_api_url,
        repository.path,
        len(repository),
        config.poll_interval_seconds,
        dry_run,
    )
    try:
        run_poll_loop(
            service,
            config.poll_interval_seconds,
            stop_event=stop,
            max_cycles=1 if once else None,
        )
    finally:
        if repository.dirty:
            repository.flush()


def main(argv: list[str] | None = None) -> int:
    """Entry point for reportbot."""
    args = parse_args(argv)
    config_path = args.config
    if not config_path.is_file() and config_path == Path("config.yaml"):
        if Path("config.example.yaml").is_file():
            config_path = Path("config.example.yaml")
            logging.basicConfig(level=logging.INFO)
            LOG.warning("config.yaml not found, using config.example.yaml")

    try:
        config = load_config(config_path, require=False)
        missing = config.missing_required()
        if args.dry_run:
            missing = [key for key in missing if not key.startswith("DISCORD_")]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if args.check:
        print("Config OK:", config.report_api_url, "->", config.discord.report_channel_id or "(dry run)")
        return 0

    try:
        run_bot(config, once=args.once, dry_run=args.dry_run)
    except KeyboardInterrupt:
        return 0
    except NotifierError as e:
        LOG.error("Notifier setup failed: %s", e)
        return 1
    except Exception as e:
        LOG.exception("Fatal error: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
