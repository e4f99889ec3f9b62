"""Tests for querying several Gerrit hosts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import orjson
import pytest
from httpx import Response

from gerrit_monitor import monitor as monitor_module
from gerrit_monitor.models import Category
from gerrit_monitor.monitor import AttentionMonitor
from tests.factories import OWNER, REVIEWER, change_payload, vote

if TYPE_CHECKING:
    from respx import MockRouter

    from gerrit_monitor.config import AppSettings

GOOD_HOST = "https://good.example.org"
BAD_HOST = "https://bad.example.org"


def _framed(payload: object) -> str:
    return ")]}'\n" + orjson.dumps(payload).decode()


@pytest.mark.asyncio
async def test_run_isolates_failing_hosts(
    settings: AppSettings,
    respx_mock: MockRouter,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A host that fails is logged and the others still produce results."""
    caplog.set_level(logging.ERROR, logger=monitor_module.__name__)
    respx_mock.get(f"{GOOD_HOST}/accounts/self").mock(
        return_value=Response(200, text=_framed({"_account_id": REVIEWER.id})),
    )
    respx_mock.get(f"{GOOD_HOST}/changes/").mock(
        return_value=Response(
            200,
            text=_framed([[], [change_payload(number=9, owner=OWNER, votes=[vote(REVIEWER, 0)])]]),
        ),
    )
    respx_mock.get(f"{BAD_HOST}/accounts/self").mock(return_value=Response(200, text="<html>login</html>"))

    monitor = AttentionMonitor(settings, hosts=[BAD_HOST, GOOD_HOST])
    results = await monitor.run()

    assert [result.host for result in results] == [GOOD_HOST]
    categories = results.category_map()
    assert [changelist.url for changelist in categories[Category.INCOMING_NEEDS_ATTENTION]] == [
        f"{GOOD_HOST}/c/platform/tools/+/9",
    ]
    assert list(monitor.failed_hosts) == [BAD_HOST]
    assert "Failed to fetch reviews from https://bad.example.org" in caplog.text


def test_monitor_requires_hosts(settings: AppSettings) -> None:
    """Without configured hosts the monitor cannot run."""
    empty = settings.model_copy(update={"hosts": []})

    with pytest.raises(ValueError, match="GMON_HOSTS"):
        AttentionMonitor(empty)
