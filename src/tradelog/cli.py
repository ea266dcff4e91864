"""CLI entry point for the trade journal."""

from __future__ import annotations

import click

from .core.config import Settings, load_settings
from .core.enums import CacheBackend


def _settings(config: str | None) -> Settings:
    from .core.errors import ConfigError

    try:
        return load_settings(config)
    except ConfigError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc


def _build_cache(settings: Settings):
    if settings.cache.backend == CacheBackend.REDIS:
        from .storage.redis_cache import RedisStrategyCache

        return RedisStrategyCache(
            settings.cache.redis_url,
            prefix=settings.cache.prefix,
            ttl_seconds=settings.cache.strategy_ttl_seconds,
        )

    from .storage.cache import TTLStrategyCache

    return TTLStrategyCache(settings.cache.strategy_ttl_seconds)


def _build_store(settings: Settings):
    """Return ``(store, database)``; *database* is None for the memory store."""
    if settings.store == "sql":
        from .storage.postgres.connection import Database
        from .storage.postgres.store import SqlRecordStore

        database = Database(settings.database)
        return SqlRecordStore(database.session_factory), database

    from .storage.memory import InMemoryRecordStore

    return InMemoryRecordStore(), None


@click.group()
def main() -> None:
    """Trade journal analytics."""


@main.command()
@click.option("--config", default=None, help="TOML config file path")
@click.option("--host", default=None, help="Bind host override")
@click.option("--port", default=None, type=int, help="Bind port override")
def serve(config: str | None, host: str | None, port: int | None) -> None:
    """Serve the JSON API."""
    import uvicorn

    from .api.app import create_app
    from .observability.logger import setup_logging
    from .observability.metrics import start_metrics_server

    settings = _settings(config)
    obs = settings.observability
    setup_logging(obs.log_level, obs.log_format)
    if obs.metrics_enabled:
        start_metrics_server(obs.metrics_port)

    store, database = _build_store(settings)
    app = create_app(
        store=store,
        settings=settings,
        cache=_build_cache(settings),
        database=database,
    )
    uvicorn.run(
        app,
        host=host or settings.api.host,
        port=port or settings.api.port,
        log_config=None,
    )


@main.command("init-db")
@click.option("--config", default=None, help="TOML config file path")
def init_db(config: str | None) -> None:
    """Create the journal tables if they do not exist."""
    import asyncio

    from .storage.postgres.connection import Database

    settings = _settings(config)

    async def _run() -> None:
        database = Database(settings.database, use_null_pool=True)
        try:
            await database.create_tables()
        finally:
            await database.dispose()

    asyncio.run(_run())
    click.echo("Tables created.")


@main.command()
@click.option("--config", default=None, help="TOML config file path")
@click.option("--user", "user_id", required=True, help="Owning user id")
@click.option("--strategy", "strategy_id", required=True, help="Strategy id")
def recompute(config: str | None, user_id: str, strategy_id: str) -> None:
    """Rebuild one strategy's performance snapshot from its closed trades."""
    import asyncio

    from .analytics.rollup import StrategyPerformanceRollup
    from .core.errors import TradeLogError
    from .observability.logger import new_trace_id, setup_logging
    from .storage.postgres.connection import Database
    from .storage.postgres.store import SqlRecordStore

    settings = _settings(config)
    setup_logging(settings.observability.log_level, settings.observability.log_format)
    new_trace_id()

    async def _run():
        database = Database(settings.database, use_null_pool=True)
        try:
            rollup = StrategyPerformanceRollup(SqlRecordStore(database.session_factory))
            return await rollup.recompute(user_id, strategy_id)
        finally:
            await database.dispose()

    try:
        performance = asyncio.run(_run())
    except TradeLogError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Strategy {strategy_id}:")
    for name, value in performance.model_dump().items():
        click.echo(f"  {name:<16} {value}")


if __name__ == "__main__":
    main()
