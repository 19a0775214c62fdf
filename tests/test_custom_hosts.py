"""Tests for custom host replacement and processing."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from structlog.testing import capture_logs

from hostwarden.domains import DomainVerification
from hostwarden.traffic import (
    ANNOTATION_MANAGED_HOST,
    ANNOTATION_PENDING_CUSTOM_HOSTS,
    ANNOTATION_ROUTED_CUSTOM_HOSTS,
    CustomHostProcessingError,
    TrafficResource,
    is_domain_verified,
    process_custom_hosts,
    replace_custom_hosts,
)

MANAGED_HOST = "abc123.apps.example.com"


def record(domain: str, is_verified: bool = True) -> DomainVerification:
    return DomainVerification(
        domain=domain, namespace="team-a", token="verify=x", verified=is_verified
    )


def resource(hosts: list[str], **annotations: str) -> TrafficResource:
    return TrafficResource(
        name="web",
        namespace="team-a",
        hosts=hosts,
        annotations={ANNOTATION_MANAGED_HOST: MANAGED_HOST, **annotations},
    )


class TestReplaceCustomHosts:
    """Tests for replace_custom_hosts."""

    def test_replaces_all_custom_hosts(self):
        res = resource(["a.com", "b.com"])
        replaced = replace_custom_hosts(res, MANAGED_HOST)

        assert replaced == ["a.com", "b.com"]
        assert res.hosts == [MANAGED_HOST]

    def test_empty_hosts_stay_empty(self):
        res = resource([])
        assert replace_custom_hosts(res, MANAGED_HOST) == []
        assert res.hosts == []

    def test_duplicates_reported_once(self):
        res = resource(["a.com", "a.com", MANAGED_HOST, "b.com"])
        replaced = replace_custom_hosts(res, MANAGED_HOST)

        assert replaced == ["a.com", "b.com"]
        assert res.hosts == [MANAGED_HOST]

    def test_managed_host_only_reports_nothing(self):
        res = resource([MANAGED_HOST])
        assert replace_custom_hosts(res, MANAGED_HOST) == []
        assert res.hosts == [MANAGED_HOST]

    def test_duplicate_managed_host_collapsed(self):
        res = resource([MANAGED_HOST, MANAGED_HOST])
        assert replace_custom_hosts(res, MANAGED_HOST) == []
        assert res.hosts == [MANAGED_HOST]


class TestIsDomainVerified:
    """Tests for is_domain_verified."""

    def test_exact_domain(self):
        assert is_domain_verified("a.com", [record("a.com")]) is True

    def test_subdomain_of_verified_domain(self):
        assert is_domain_verified("api.a.com", [record("a.com")]) is True

    def test_suffix_without_dot_boundary(self):
        assert is_domain_verified("evila.com", [record("a.com")]) is False

    def test_unverified_record_ignored(self):
        assert is_domain_verified("a.com", [record("a.com", is_verified=False)]) is False

    def test_wildcard_record(self):
        records = [record("*.a.com")]
        assert is_domain_verified("api.a.com", records) is True
        assert is_domain_verified("deep.api.a.com", records) is False
        assert is_domain_verified("a.com", records) is False

    def test_case_insensitive(self):
        assert is_domain_verified("API.A.COM", [record("a.com")]) is True

    def test_no_records(self):
        assert is_domain_verified("a.com", []) is False


class TestProcessCustomHosts:
    """Tests for process_custom_hosts."""

    @pytest.mark.asyncio
    async def test_routes_verified_hosts(self):
        res = resource(["a.com", "b.com"])
        create, delete = AsyncMock(), AsyncMock()

        await process_custom_hosts(res, [record("a.com")], create, delete)

        create.assert_awaited_once_with(res, "a.com")
        delete.assert_awaited_once_with(res, "b.com")
        assert res.hosts == ["a.com"]
        assert json.loads(res.annotations[ANNOTATION_PENDING_CUSTOM_HOSTS]) == ["b.com"]
        assert json.loads(res.annotations[ANNOTATION_ROUTED_CUSTOM_HOSTS]) == ["a.com"]

    @pytest.mark.asyncio
    async def test_managed_host_is_kept_and_not_routed(self):
        res = resource([MANAGED_HOST, "a.com"])
        create, delete = AsyncMock(), AsyncMock()

        await process_custom_hosts(res, [record("a.com")], create, delete)

        assert res.hosts == [MANAGED_HOST, "a.com"]
        create.assert_awaited_once_with(res, "a.com")
        delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_all_verified_clears_pending(self):
        res = resource(["a.com"], **{ANNOTATION_PENDING_CUSTOM_HOSTS: '["b.a.com"]'})
        create, delete = AsyncMock(), AsyncMock()

        await process_custom_hosts(res, [record("a.com")], create, delete)

        assert res.hosts == ["a.com", "b.a.com"]
        assert ANNOTATION_PENDING_CUSTOM_HOSTS not in res.annotations

    @pytest.mark.asyncio
    async def test_removed_host_route_deleted(self):
        res = resource(["a.com"], **{ANNOTATION_ROUTED_CUSTOM_HOSTS: '["a.com", "old.a.com"]'})
        create, delete = AsyncMock(), AsyncMock()

        await process_custom_hosts(res, [record("a.com")], create, delete)

        delete.assert_awaited_once_with(res, "old.a.com")
        assert json.loads(res.annotations[ANNOTATION_ROUTED_CUSTOM_HOSTS]) == ["a.com"]

    @pytest.mark.asyncio
    async def test_revoked_verification_deletes_route(self):
        res = resource(["a.com"], **{ANNOTATION_ROUTED_CUSTOM_HOSTS: '["a.com"]'})
        create, delete = AsyncMock(), AsyncMock()

        await process_custom_hosts(res, [], create, delete)

        create.assert_not_awaited()
        delete.assert_awaited_once_with(res, "a.com")
        assert res.hosts == []
        assert ANNOTATION_ROUTED_CUSTOM_HOSTS not in res.annotations
        assert json.loads(res.annotations[ANNOTATION_PENDING_CUSTOM_HOSTS]) == ["a.com"]

    @pytest.mark.asyncio
    async def test_failed_delete_stays_routed(self):
        res = resource([], **{ANNOTATION_ROUTED_CUSTOM_HOSTS: '["old.a.com"]'})
        create = AsyncMock()
        delete = AsyncMock(side_effect=RuntimeError("api down"))

        with pytest.raises(CustomHostProcessingError) as exc_info:
            await process_custom_hosts(res, [record("a.com")], create, delete)

        assert list(exc_info.value.failures) == ["old.a.com"]
        assert json.loads(res.annotations[ANNOTATION_ROUTED_CUSTOM_HOSTS]) == ["old.a.com"]

    @pytest.mark.asyncio
    async def test_every_callback_attempted(self):
        res = resource(["a.com", "b.a.com", "c.com"])
        create = AsyncMock(side_effect=[RuntimeError("first"), None])
        delete = AsyncMock()

        with pytest.raises(CustomHostProcessingError) as exc_info:
            await process_custom_hosts(res, [record("a.com")], create, delete)

        assert create.await_count == 2
        delete.assert_awaited_once_with(res, "c.com")
        assert set(exc_info.value.failures) == {"a.com"}
        assert res.hosts == ["a.com", "b.a.com"]
        assert json.loads(res.annotations[ANNOTATION_ROUTED_CUSTOM_HOSTS]) == ["b.a.com"]

    @pytest.mark.asyncio
    async def test_hosts_normalized_and_deduplicated(self):
        res = resource(["A.com", "a.com.", "a.com"])
        create, delete = AsyncMock(), AsyncMock()

        await process_custom_hosts(res, [record("a.com")], create, delete)

        create.assert_awaited_once_with(res, "a.com")
        assert res.hosts == ["a.com"]

    @pytest.mark.asyncio
    async def test_malformed_annotations_read_as_empty(self):
        res = resource(
            ["a.com"],
            **{
                ANNOTATION_PENDING_CUSTOM_HOSTS: "not-json",
                ANNOTATION_ROUTED_CUSTOM_HOSTS: '{"a": 1}',
            },
        )
        create, delete = AsyncMock(), AsyncMock()

        await process_custom_hosts(res, [record("a.com")], create, delete)

        assert res.hosts == ["a.com"]
        delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_annotations_logged(self):
        res = resource(["a.com"], **{ANNOTATION_ROUTED_CUSTOM_HOSTS: "not-json"})

        with capture_logs() as logs:
            await process_custom_hosts(res, [record("a.com")], AsyncMock(), AsyncMock())

        warnings = [log for log in logs if log["event"] == "host_list_annotation_malformed"]
        assert [log["key"] for log in warnings] == [ANNOTATION_ROUTED_CUSTOM_HOSTS]
        assert warnings[0]["log_level"] == "warning"

    @pytest.mark.asyncio
    async def test_failed_update_of_routed_host_stays_routed(self):
        res = resource(["a.com"], **{ANNOTATION_ROUTED_CUSTOM_HOSTS: '["a.com"]'})
        create = AsyncMock(side_effect=RuntimeError("api down"))
        delete = AsyncMock()

        with pytest.raises(CustomHostProcessingError):
            await process_custom_hosts(res, [record("a.com")], create, delete)

        assert json.loads(res.annotations[ANNOTATION_ROUTED_CUSTOM_HOSTS]) == ["a.com"]

        res.hosts = []
        await process_custom_hosts(res, [record("a.com")], AsyncMock(), delete)

        delete.assert_awaited_once_with(res, "a.com")
        assert ANNOTATION_ROUTED_CUSTOM_HOSTS not in res.annotations

    @pytest.mark.asyncio
    async def test_uppercase_managed_host_is_not_custom(self):
        res = resource(["ABC123.Apps.Example.com"])
        res.annotations[ANNOTATION_MANAGED_HOST] = "ABC123.Apps.Example.com"
        create, delete = AsyncMock(), AsyncMock()

        await process_custom_hosts(res, [], create, delete)

        assert res.hosts == ["abc123.apps.example.com"]
        assert ANNOTATION_PENDING_CUSTOM_HOSTS not in res.annotations
        create.assert_not_awaited()
        delete.assert_not_awaited()
