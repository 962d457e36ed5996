import argparse
import asyncio
import signal
from typing import List, Optional

from loguru import logger

from bookscrapper.errors import ScrapperConfigError
from bookscrapper.fetcher import PageFetcher
from bookscrapper.monitoring.metrics_server import start_metrics_server
from bookscrapper.records import ResourceKind
from bookscrapper.registry import build_default_registry
from bookscrapper.service import RunStats, ScrapperService
from bookscrapper.sites.group import WebsiteScrappersGroup
from bookscrapper.storage.db import close_db, init_db
from bookscrapper.utils.config_loader import Config, load_config
from bookscrapper.utils.logger import setup_logger


# -------------------------------
# ARGUMENTS
# -------------------------------
def _resource_kind(value: str) -> ResourceKind:
    try:
        return ResourceKind[value.strip().upper()]
    except KeyError:
        choices = ", ".join(kind.value for kind in ResourceKind)
        raise argparse.ArgumentTypeError(f"unknown kind {value!r} (choose from {choices})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookscrapper",
        description="Crawl book sites and poll review APIs into the scrapper metadata store.",
    )
    parser.add_argument("--metrics-port", type=int, help="Serve Prometheus /metrics on this port")
    parser.add_argument("--log-level", help="Override the configured log level")
    commands = parser.add_subparsers(dest="command", required=True)

    latest = commands.add_parser("refresh-latest", help="Refresh the newest items of every site")
    latest.add_argument("--kind", type=_resource_kind, help="Only analyze this resource kind")
    latest.add_argument("--max-iterations", type=int, default=1, help="API pages per site")

    refresh_all = commands.add_parser("refresh-all", help="Refresh every page of one or all sites")
    refresh_all.add_argument("--website", help="Website URL; all sites when omitted")
    refresh_all.add_argument("--initial-page", type=int, help="API page to resume from")
    refresh_all.add_argument("--kind", type=_resource_kind, help="Only analyze this resource kind")

    single = commands.add_parser("refresh-single", help="Fetch and upsert one remote record")
    single.add_argument("--website", required=True, help="Website URL")
    single.add_argument("--remote-id", required=True, help="Remote id (page path for crawled sites)")
    single.add_argument("--kind", type=_resource_kind, help="Resource kind of the record")

    crawl = commands.add_parser("crawl", help="Drain the frontier of crawled sites")
    crawl.add_argument("--website", help="Website URL; all crawled sites when omitted")
    crawl.add_argument("--max-iterations", type=int, help="Frontier items per site")
    crawl.add_argument("--kind", type=_resource_kind, help="Only analyze this resource kind")
    crawl.add_argument("--retry-errors", action="store_true", help="Re-queue ERROR items first")

    return parser


def _requests_api_site(args: argparse.Namespace) -> bool:
    """Explicitly naming an API site makes its missing credentials fatal."""
    website = getattr(args, "website", None)
    return bool(website) and "wykop.pl" in website.lower()


# -------------------------------
# COMMANDS
# -------------------------------
async def run_command(args: argparse.Namespace, service: ScrapperService, config: Config) -> RunStats:
    if args.command == "refresh-latest":
        return await service.refresh_latest(kind=args.kind, max_iterations=args.max_iterations)

    if args.command == "refresh-all":
        if args.website:
            return await service.refresh_website(
                args.website,
                kind=args.kind,
                initial_page=args.initial_page,
                max_iterations=None,
            )
        return await service.refresh_latest(kind=args.kind, max_iterations=None)

    if args.command == "refresh-single":
        record = await service.refresh_single(args.website, args.remote_id, kind=args.kind)
        return RunStats(analyzed=1, imported=1 if record is not None else 0)

    if args.command == "crawl":
        if args.website:
            group = service.registry.get_by_website_url(args.website)
            if not isinstance(group, WebsiteScrappersGroup):
                raise ScrapperConfigError(f"{args.website} is not a crawled website")
            groups: List[WebsiteScrappersGroup] = [group]
        else:
            groups = list(service.registry.groups)

        max_iterations = args.max_iterations
        if max_iterations is None:
            max_iterations = config.max_iterations
        stats = RunStats()
        for group in groups:
            if service.cancel_event.is_set():
                break
            stats.add(
                await service.crawl(
                    group,
                    max_iterations=max_iterations,
                    kind=args.kind,
                    retry_errors=args.retry_errors,
                )
            )
        return stats

    raise ScrapperConfigError(f"Unknown command {args.command}")


# -------------------------------
# MAIN APPLICATION
# -------------------------------
async def main(argv: Optional[List[str]] = None) -> RunStats:
    args = build_parser().parse_args(argv)
    config = load_config()
    setup_logger(args.log_level or config.log_level, config.log_path)

    registry = build_default_registry(config, require_api_keys=_requests_api_site(args))

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, cancel_event.set)

    await init_db(config.database_url)

    metrics_runner = None
    metrics_port = args.metrics_port or config.metrics_port
    if metrics_port:
        metrics_runner, _ = await start_metrics_server(port=metrics_port)

    try:
        async with PageFetcher(
            user_agent=config.crawler_user_agent,
            request_timeout=config.request_timeout,
            min_delay=config.crawl_delay_default,
            max_download_bytes=config.max_download_bytes,
        ) as fetcher:
            service = ScrapperService(
                registry=registry,
                fetcher=fetcher,
                crawler_workers=config.crawler_workers,
                spider_max_iterations=config.max_iterations,
                cancel_event=cancel_event,
            )
            stats = await run_command(args, service, config)
    finally:
        if metrics_runner is not None:
            await metrics_runner.shutdown()
            await metrics_runner.cleanup()
        await close_db()

    logger.info(f"{args.command} finished: {stats}")
    print(
        f"analyzed={stats.analyzed} errored={stats.errored} "
        f"skipped={stats.skipped} imported={stats.imported}"
    )
    return stats


# -------------------------------
# ENTRYPOINT
# -------------------------------
def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
