"""
Unit tests for endpoint discovery.

Tests cover:
- Candidate URL list (order, host normalization)
- Resolution (first reachable wins, 401/403 count as reachable)
- Failure reporting when nothing answers
"""

import pytest

from conftest import BASE_URL, HOST, FakeTransport
from piaf.cancellation import CancellationToken
from piaf.endpoints import EndpointResolver, candidate_urls, is_reachable_status, normalize_host
from piaf.errors import EndpointUnreachableError, RunCancelledError, TransportError, TransportErrorKind


class TestCandidateUrls:
    """Tests for the candidate list."""

    def test_candidate_order(self):
        """Test https before http and standard path before alternates."""
        urls = candidate_urls(HOST)

        assert len(urls) == 11
        assert urls[0] == f"https://{HOST}/piwebapi"
        assert urls[1] == f"https://{HOST}:443/piwebapi"
        assert urls[2] == f"http://{HOST}/piwebapi"
        assert urls[-1] == f"http://{HOST}/piwebapi2019"

    def test_candidates_are_deterministic(self):
        """Test the same host always yields the same list."""
        assert candidate_urls(HOST) == candidate_urls(HOST)

    def test_host_normalized(self):
        """Test scheme, path and whitespace are stripped from the host."""
        assert normalize_host("  https://af.example.com/piwebapi ") == HOST
        assert candidate_urls("https://af.example.com/")[0] == BASE_URL

    def test_empty_host_raises(self):
        """Test an empty host name is rejected."""
        with pytest.raises(ValueError, match="empty"):
            candidate_urls("   ")

    @pytest.mark.parametrize("status, reachable", [
        (200, True), (204, True), (401, True), (403, True), (404, False), (500, False),
    ])
    def test_reachable_status(self, status, reachable):
        """Test which status codes count as a live server."""
        assert is_reachable_status(status) is reachable


class TestEndpointResolver:
    """Tests for probing candidates."""

    def test_first_reachable_wins(self):
        """Test resolution stops at the first reachable candidate."""
        urls = candidate_urls(HOST)
        transport = FakeTransport(probes={urls[2]: 200, urls[4]: 200})

        assert EndpointResolver(transport).resolve(HOST) == urls[2]
        assert transport.probed == urls[:3]

    def test_auth_required_counts_as_reachable(self):
        """Test a 401 answer is accepted as the working endpoint."""
        urls = candidate_urls(HOST)
        transport = FakeTransport(probes={urls[0]: 401})

        assert EndpointResolver(transport).resolve(HOST) == urls[0]

    def test_not_found_status_skipped(self):
        """Test a 404 on one path moves on to the next candidate."""
        urls = candidate_urls(HOST)
        transport = FakeTransport(probes={urls[0]: 404, urls[1]: 200})

        assert EndpointResolver(transport).resolve(HOST) == urls[1]

    def test_unreachable_reports_every_attempt(self):
        """Test all eleven attempts are attached to the error."""
        urls = candidate_urls(HOST)
        transport = FakeTransport(probes={
            urls[0]: TransportError(TransportErrorKind.TLS_FAILURE, urls[0]),
            urls[1]: 404,
        })

        with pytest.raises(EndpointUnreachableError) as exc_info:
            EndpointResolver(transport).resolve(HOST)

        attempts = exc_info.value.attempts
        assert [a["url"] for a in attempts] == urls
        assert attempts[0]["error"] == "tls_failure"
        assert attempts[1]["status"] == 404
        assert attempts[2]["error"] == "connection_refused"
        assert not any(a["reachable"] for a in attempts)
        assert exc_info.value.to_dict()["host"] == HOST

    def test_probe_all_without_stopping(self):
        """Test probe_all can report every candidate for diagnostics."""
        urls = candidate_urls(HOST)
        transport = FakeTransport(probes={urls[0]: 200})

        attempts = EndpointResolver(transport).probe_all(HOST, stop_on_success=False)

        assert len(attempts) == 11
        assert attempts[0]["reachable"] is True

    def test_cancelled_before_probing(self):
        """Test a cancelled token stops discovery."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(RunCancelledError):
            EndpointResolver(FakeTransport()).resolve(HOST, token)

    @pytest.mark.parametrize("host", ["", "   "])
    def test_blank_host_unreachable(self, host):
        """Test a blank host fails resolution without probing."""
        transport = FakeTransport()

        with pytest.raises(EndpointUnreachableError) as exc_info:
            EndpointResolver(transport).resolve(host)

        assert exc_info.value.attempts == []
        assert transport.probed == []
