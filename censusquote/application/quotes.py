"""Application service turning a census chat event into a delivered quote."""
from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Awaitable, Callable, TypeVar

from censusquote.core.errors import AdapterError
from censusquote.core.quote import compute_age_band_stats, quote_as_text, quote_from_stats
from censusquote.core.results import Err, Ok, Result
from censusquote.core.schema import CensusEvent, QuoteReport, QuoteTable
from censusquote.infrastructure.record_store import RecordStore
from censusquote.infrastructure.rendering import render_distribution_chart, render_quote_image
from censusquote.infrastructure.slack import ChatClient, ChatClientFactory
from censusquote.settings import Settings
from censusquote.workers.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QuoteService:
    """Coordinates fetch, ingestion, quoting and delivery for one event."""

    ARTIFACTS: tuple[dict[str, Any], ...] = (
        {
            "name": "quote",
            "filename": "census-quote.png",
            "title": "Base plan rates",
            "render": render_quote_image,
        },
        {
            "name": "age_bands",
            "filename": "census-age-bands.png",
            "title": "Census age distribution",
            "render": render_distribution_chart,
        },
    )

    def __init__(
        self,
        store: RecordStore,
        chat_factory: ChatClientFactory,
        settings: Settings,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._chat_factory = chat_factory
        self._settings = settings
        self._today = today
        self._pipeline = IngestionPipeline(
            store,
            allow_empty_census=settings.allow_empty_census,
        )

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    async def _attempt(stage: str, call: Awaitable[T]) -> Result[T]:
        try:
            return Ok(await call)
        except Exception as exc:
            logger.warning("%s failed: %s", stage, exc, extra={"stage": stage})
            return Err(AdapterError(stage, exc))

    async def _deliver(self, chat: ChatClient, artifact: dict[str, Any], subject: object) -> Result[str]:
        name = artifact["name"]
        rendered = await self._attempt(f"render_{name}", asyncio.to_thread(artifact["render"], subject))
        if isinstance(rendered, Err):
            return rendered
        return await self._attempt(
            f"upload_{name}",
            chat.upload_file(rendered.value, artifact["filename"], title=artifact["title"]),
        )

    @staticmethod
    def _summary(quote: QuoteTable, permalinks: dict[str, str], errors: list[AdapterError]) -> str:
        if permalinks:
            lines = ["Here are your files!", " ".join(f"<{link}| >" for link in permalinks.values())]
        else:
            lines = ["Your census was saved, but the quote images could not be delivered."]
        if errors:
            lines.append("Not delivered: " + ", ".join(str(error.stage) for error in errors))
        if not permalinks:
            lines.append(f"```\n{quote_as_text(quote)}\n```")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # use cases
    # ------------------------------------------------------------------
    async def handle_event(self, event: CensusEvent) -> QuoteReport:
        chat = self._chat_factory(event.token)
        try:
            return await self._handle(chat, event)
        finally:
            await chat.aclose()

    async def _handle(self, chat: ChatClient, event: CensusEvent) -> QuoteReport:
        try:
            source = await chat.fetch_file_content(event.file_id)
        except Exception as exc:
            raise AdapterError("fetch", exc) from exc

        ingestion = await self._pipeline.ingest(source, event.file_id)

        stats, _ = compute_age_band_stats(ingestion.rows, self._today())
        quote = quote_from_stats(stats)
        subjects = {"quote": quote, "age_bands": stats}

        permalinks: dict[str, str] = {}
        errors: list[AdapterError] = []
        for artifact in self.ARTIFACTS:
            delivered = await self._deliver(chat, artifact, subjects[artifact["name"]])
            if isinstance(delivered, Ok):
                permalinks[artifact["name"]] = delivered.value
            else:
                errors.append(delivered.error)

        announced = await self._attempt(
            "announce",
            chat.post_message(
                self._settings.notify_channel,
                self._summary(quote, permalinks, errors),
                thread_ts=event.ts,
            ),
        )
        if isinstance(announced, Err):
            errors.append(announced.error)

        return QuoteReport(
            census_id=ingestion.census_id,
            rows=len(ingestion.rows),
            batches=ingestion.batches_committed,
            quote=quote,
            age_bands=stats.as_dict(),
            permalinks=permalinks,
            errors=[error.describe() for error in errors],
        )


_service: QuoteService | None = None


def configure_quote_service(service: QuoteService | None) -> None:
    """Install the service used by the HTTP routes."""

    global _service
    _service = service


def get_quote_service() -> QuoteService:
    """Return the configured quote service for the process."""

    if _service is None:
        raise RuntimeError("quote service is not configured")
    return _service
