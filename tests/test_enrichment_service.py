"""Analyze-one and sync-unprocessed jobs for garments and sessions."""

from __future__ import annotations

import pytest

from conftest import FakeMetadataService, SAMPLE_METADATA, make_png
from prendas.core.entities import Garment, TryOnSession
from prendas.core.errors import UpstreamServiceError
from prendas.core.jobs import ANALYZE_GARMENT, ANALYZE_SESSION
from prendas.services.enrichment_service import (
    analyze_garment,
    analyze_session,
    sync_unprocessed_garments,
    sync_unprocessed_sessions,
)


async def _garment(services, key: str, owner_id: str = "user-1") -> Garment:
    services.storage.objects[key] = make_png()
    return await services.garments.create(
        Garment(original_url=services.storage.public_url(key), owner_id=owner_id)
    )


async def _session(services, result_key=None) -> TryOnSession:
    garment = await _garment(services, "garments/base.png")
    session = await services.sessions.create(
        TryOnSession(owner_id="user-1", mannequin_url="female_mannequin_anchor.png", garments=[garment])
    )
    if result_key:
        services.storage.objects[result_key] = make_png(784, 1024)
        await services.sessions.mark_completed(
            session.id, "user-1", services.storage.public_url(result_key)
        )
    return session


@pytest.mark.asyncio
async def test_analyze_garment_stores_metadata_and_embedding(services) -> None:
    garment = await _garment(services, "garments/shirt.png")

    stored = await analyze_garment({"entityId": garment.id, "ownerId": "user-1"}, services)

    row = services.garments.rows[garment.id]
    assert stored is True
    assert row.metadata == SAMPLE_METADATA
    assert len(row.embedding) == 768
    assert services.metadata.embedded == ["Red cotton shirt"]


@pytest.mark.asyncio
async def test_analyze_garment_skips_deleted(services) -> None:
    garment = await _garment(services, "garments/shirt.png")
    await services.garments.soft_delete(garment.id, "user-1")

    stored = await analyze_garment({"entityId": garment.id, "ownerId": "user-1"}, services)

    assert stored is False
    assert services.garments.rows[garment.id].metadata is None


@pytest.mark.asyncio
async def test_analyze_garment_missing_is_a_no_op(services) -> None:
    stored = await analyze_garment({"entityId": "ghost", "ownerId": "user-1"}, services)

    assert stored is False


@pytest.mark.asyncio
async def test_analyze_garment_propagates_upstream_failure(services) -> None:
    services.metadata = FakeMetadataService(error=UpstreamServiceError("gemini", "HTTP 500", 500))
    garment = await _garment(services, "garments/shirt.png")

    with pytest.raises(UpstreamServiceError):
        await analyze_garment({"entityId": garment.id, "ownerId": "user-1"}, services)

    row = services.garments.rows[garment.id]
    assert row.metadata is None
    assert row.embedding is None


@pytest.mark.asyncio
async def test_analyze_session_requires_result(services) -> None:
    session = await _session(services)

    stored = await analyze_session({"entityId": session.id, "ownerId": "user-1"}, services)

    assert stored is False
    assert services.sessions.rows[session.id].metadata is None


@pytest.mark.asyncio
async def test_analyze_session_enriches_completed_session(services) -> None:
    session = await _session(services, result_key="results/done.png")

    stored = await analyze_session({"entityId": session.id, "ownerId": "user-1"}, services)

    assert stored is True
    assert services.sessions.rows[session.id].metadata == SAMPLE_METADATA


@pytest.mark.asyncio
async def test_sync_garments_enqueues_only_unprocessed(services) -> None:
    pending = [await _garment(services, f"garments/p{idx}.png") for idx in range(3)]
    deleted = await _garment(services, "garments/deleted.png")
    await services.garments.soft_delete(deleted.id, "user-1")
    enriched = await _garment(services, "garments/enriched.png")
    await services.garments.update_enrichment(enriched.id, SAMPLE_METADATA, [0.0] * 768)

    count = await sync_unprocessed_garments(services)

    assert count == 3
    assert sorted(job[1]["entityId"] for job in services.garment_queue.jobs) == sorted(
        g.id for g in pending
    )
    assert {job[0] for job in services.garment_queue.jobs} == {ANALYZE_GARMENT}


@pytest.mark.asyncio
async def test_sync_sessions_enqueues_only_completed_unprocessed(services) -> None:
    await _session(services)
    completed = await _session(services, result_key="results/r1.png")

    count = await sync_unprocessed_sessions(services)

    assert count == 1
    assert services.session_queue.jobs == [
        (ANALYZE_SESSION, {"entityId": completed.id, "ownerId": "user-1"})
    ]


@pytest.mark.asyncio
async def test_sync_with_nothing_pending_enqueues_nothing(services) -> None:
    assert await sync_unprocessed_garments(services) == 0
    assert services.garment_queue.jobs == []
