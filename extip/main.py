from __future__ import annotations

import logging
import sys

from extip.config import AppConfig, load_config
from extip.logging_setup import setup_logging
from extip.nonblocking import NonBlockingResolverService
from extip.provider import Address
from extip.resolver import ResolverService


def run_resolution(config: AppConfig, resolver: ResolverService) -> Address | None:
    with NonBlockingResolverService(resolver, max_workers=config.max_workers) as service:
        return service.resolve(config.max_cache_age_seconds).result()


def main(argv: list[str] | None = None) -> int:
    try:
        config = load_config(argv=argv)
    except Exception as exc:  # noqa: BLE001
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    setup_logging(config.log_level)
    logger = logging.getLogger("extip")
    logger.info(
        "Starting extip providers=%s max_cache_age=%ss timeout=%ss",
        ",".join(config.providers),
        config.max_cache_age_seconds,
        config.request_timeout_seconds,
    )

    resolver = ResolverService.from_registry(
        names=config.providers,
        timeout_seconds=config.request_timeout_seconds,
        logger=logger,
    )
    try:
        address = run_resolution(config, resolver)
    finally:
        resolver.close()

    if address is None:
        print("Unable to resolve public IP address.", file=sys.stderr)
        return 1

    print(address.compressed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
