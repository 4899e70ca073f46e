"""Tests for the opt-out link health monitor."""

import asyncio

import httpx

from app.config import settings
from app.services.email import build_link_health_report_html, send_link_health_report
from app.services.job_runner import Deadline
from app.services.link_health import check_opt_out_links, is_working_status


def make_client(statuses: dict[str, int], failures: dict[str, type] = None) -> httpx.AsyncClient:
    """Client answering HEAD requests from a URL -> status map; unknown URLs are 404."""
    failures = failures or {}

    def handler(request: httpx.Request) -> httpx.Response:
        error = failures.get(request.url.host)
        if error is not None:
            raise error("connection refused" if error is httpx.ConnectError else "timed out", request=request)
        return httpx.Response(statuses.get(str(request.url), 404))

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def check(links, client, **kwargs):
    async def main():
        async with client:
            return await check_opt_out_links(links, client=client, **kwargs)

    return asyncio.run(main())


class FakeProvider:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    async def send(self, to, subject, html, reply_to=None):
        if self.error is not None:
            raise self.error
        self.sent.append((to, subject, html))
        return "msg-1"

    async def list_delivery_statuses(self, since):
        return []


class TestWorkingStatus:
    def test_success_and_redirect_codes(self):
        assert is_working_status(200)
        assert is_working_status(301)

    def test_forbidden_counts_as_working(self):
        assert is_working_status(403)

    def test_client_and_server_errors(self):
        assert not is_working_status(404)
        assert not is_working_status(410)
        assert not is_working_status(500)


class TestCheckOptOutLinks:
    def test_working_links(self):
        client = make_client({"https://a.example/optout": 200, "https://b.example/optout": 403})
        report = check([("A", "https://a.example/optout"), ("B", "https://b.example/optout")], client)
        assert report.checked == 2
        assert report.working == 2
        assert report.broken_links == []

    def test_known_correction_wins_over_suggestion(self):
        client = make_client({
            "https://www.beenverified.com/app/optout/search": 200,
            "https://www.beenverified.com/optout": 200,
        })
        report = check([("BEENVERIFIED", "https://www.beenverified.com/opt-out/")], client)
        assert report.broken == 1
        assert report.corrected == 1
        assert report.suggested == 0
        link = report.broken_links[0]
        assert link["status_code"] == 404
        assert link["corrected_url"] == "https://www.beenverified.com/app/optout/search"
        assert link["suggested_url"] is None

    def test_failed_correction_falls_back_to_path_variations(self):
        client = make_client({"https://www.beenverified.com/privacy": 200})
        report = check([("BEENVERIFIED", "https://www.beenverified.com/opt-out/")], client)
        link = report.broken_links[0]
        assert link["corrected_url"] is None
        assert link["suggested_url"] == "https://www.beenverified.com/privacy"

    def test_suggests_first_working_path(self):
        client = make_client({
            "https://c.example/opt-out": 200,
            "https://c.example/privacy": 200,
        })
        report = check([("C", "https://c.example/remove-me")], client)
        assert report.suggested == 1
        assert report.broken_links[0]["suggested_url"] == "https://c.example/opt-out"

    def test_no_alternative_found(self):
        client = make_client({})
        report = check([("C", "https://c.example/remove-me")], client)
        assert report.broken == 1
        assert report.broken_links[0]["corrected_url"] is None
        assert report.broken_links[0]["suggested_url"] is None

    def test_timeouts_and_connection_errors(self):
        client = make_client(
            {"https://ok.example/optout": 200},
            failures={"slow.example": httpx.ConnectTimeout, "down.example": httpx.ConnectError},
        )
        report = check([
            ("OK", "https://ok.example/optout"),
            ("SLOW", "https://slow.example/optout"),
            ("DOWN", "https://down.example/optout"),
        ], client)
        assert report.checked == 3
        assert report.working == 1
        assert report.errors == 2
        assert report.timeouts == 1
        assert report.broken == 0
        by_source = {link["source"]: link for link in report.broken_links}
        assert by_source["SLOW"]["error"] == "Timeout"
        assert by_source["SLOW"]["timed_out"] is True
        assert by_source["DOWN"]["error"] == "connection refused"

    def test_head_refused_retries_with_get(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.host))
            if request.method == "HEAD":
                return httpx.Response(405 if request.url.host != "d.example" else 501)
            return httpx.Response(200, text="<html>opt out</html>")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        report = check([("A", "https://a.example/optout"), ("D", "https://d.example/optout")], client)
        assert report.working == 2
        assert report.broken == 0
        assert ("GET", "a.example") in seen
        assert ("GET", "d.example") in seen

    def test_get_retry_status_decides_broken(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(405 if request.method == "HEAD" else 404)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        report = check([("B", "https://b.example/optout")], client)
        assert report.broken == 1
        assert report.broken_links[0]["status_code"] == 404

    def test_expired_deadline_skips_remaining(self):
        client = make_client({"https://a.example/optout": 200})
        report = check([("A", "https://a.example/optout"), ("B", "https://b.example/optout")], client,
                       deadline=Deadline(0))
        assert report.checked == 0
        assert report.skipped == 2
        assert report.partial is True


class TestLinkHealthReportEmail:
    def _report(self):
        client = make_client({})
        return check([("RADARIS", "https://radaris.com/page/how-to-remove")], client).to_dict()

    def test_sends_to_admins(self, monkeypatch):
        monkeypatch.setattr(settings, "admin_emails", ["ops@example.com"])
        provider = FakeProvider()
        assert asyncio.run(send_link_health_report(provider, self._report())) is True
        to, subject, html = provider.sent[0]
        assert to == ["ops@example.com"]
        assert "1 broken opt-out links" in subject
        assert "RADARIS" in html

    def test_nothing_to_report(self, monkeypatch):
        monkeypatch.setattr(settings, "admin_emails", ["ops@example.com"])
        provider = FakeProvider()
        report = {"broken_links": []}
        assert asyncio.run(send_link_health_report(provider, report)) is False
        assert provider.sent == []

    def test_no_admins_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "admin_emails", [])
        assert asyncio.run(send_link_health_report(FakeProvider(), self._report())) is False

    def test_send_failure_is_reported_not_raised(self, monkeypatch):
        monkeypatch.setattr(settings, "admin_emails", ["ops@example.com"])
        provider = FakeProvider(error=RuntimeError("provider down"))
        assert asyncio.run(send_link_health_report(provider, self._report())) is False

    def test_html_lists_fixes(self):
        html = build_link_health_report_html({
            "checked": 2, "working": 0, "broken": 2, "errors": 0, "timeouts": 0,
            "corrected": 1, "suggested": 1,
            "broken_links": [
                {"source": "A", "url": "https://a.example/x", "status_code": 404, "error": None,
                 "corrected_url": "https://a.example/fixed", "suggested_url": None},
                {"source": "B", "url": "https://b.example/x", "status_code": 410, "error": None,
                 "corrected_url": None, "suggested_url": "https://b.example/opt-out"},
            ],
        })
        assert "Known correction" in html
        assert "https://b.example/opt-out" in html
        assert "needs review" in html

    def test_html_escapes_urls_and_errors(self):
        html = build_link_health_report_html({
            "checked": 1, "working": 0, "broken": 1, "errors": 1, "timeouts": 0,
            "corrected": 0, "suggested": 0,
            "broken_links": [
                {"source": "A", "url": "https://a.example/x?a=1&b=<script>", "status_code": None,
                 "error": "bad <response>", "corrected_url": None, "suggested_url": None},
            ],
        })
        assert "<script>" not in html
        assert "https://a.example/x?a=1&amp;b=&lt;script&gt;" in html
        assert "bad &lt;response&gt;" in html
