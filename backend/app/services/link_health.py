"""Opt-out link health monitor.

Probes every broker's opt-out URL and, for broken ones, looks for a
replacement: a known correction first, then common opt-out paths on the
same host. Findings are reported to operators only; the broker directory
is never modified.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.models.enums import JobStatus
from app.services.email import get_email_provider, send_link_health_report
from app.services.job_runner import Deadline, JobOutcome
from brokers import list_brokers
from brokers.url_corrections import candidate_urls, get_known_correction

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


@dataclass
class ProbeResult:
    status_code: Optional[int] = None
    error: Optional[str] = None
    timed_out: bool = False

    @property
    def working(self) -> bool:
        return self.status_code is not None and is_working_status(self.status_code)


@dataclass
class LinkCheckResult:
    """Health of one broker's opt-out URL."""
    source: str
    url: str
    working: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    timed_out: bool = False
    corrected_url: Optional[str] = None
    suggested_url: Optional[str] = None


@dataclass
class LinkHealthReport:
    checked: int = 0
    working: int = 0
    broken: int = 0
    errors: int = 0
    timeouts: int = 0
    corrected: int = 0
    suggested: int = 0
    skipped: int = 0
    partial: bool = False
    broken_links: list[dict] = field(default_factory=list)

    def add(self, result: LinkCheckResult) -> None:
        self.checked += 1
        if result.working:
            self.working += 1
            return
        if result.error is not None:
            self.errors += 1
            if result.timed_out:
                self.timeouts += 1
        else:
            self.broken += 1
        if result.corrected_url:
            self.corrected += 1
        elif result.suggested_url:
            self.suggested += 1
        self.broken_links.append(asdict(result))

    def to_dict(self) -> dict:
        return asdict(self)


def is_working_status(status_code: int) -> bool:
    """2xx and 3xx work; 403 is bot protection on a live page."""
    return 200 <= status_code < 400 or status_code == 403


# Servers that refuse HEAD but serve the page to GET
HEAD_REJECTED_STATUSES = {405, 501}


async def probe_url(client: httpx.AsyncClient, url: str) -> ProbeResult:
    """HEAD ``url``, following redirects, with a GET retry when HEAD is refused."""
    try:
        response = await client.head(url, follow_redirects=True)
    except httpx.TimeoutException:
        return ProbeResult(error="Timeout", timed_out=True)
    except httpx.HTTPError as e:
        return ProbeResult(error=str(e) or type(e).__name__)

    if response.status_code in HEAD_REJECTED_STATUSES:
        try:
            async with client.stream("GET", url, follow_redirects=True) as get_response:
                return ProbeResult(status_code=get_response.status_code)
        except httpx.HTTPError as e:
            logger.debug("GET retry for %s failed: %s", url, e)
    return ProbeResult(status_code=response.status_code)


async def find_replacement(client: httpx.AsyncClient, url: str) -> tuple[Optional[str], Optional[str]]:
    """(corrected_url, suggested_url) for a broken URL.

    A verified known correction wins and no suggestion is made alongside it.
    """
    correction = get_known_correction(url)
    if correction:
        if (await probe_url(client, correction)).working:
            return correction, None
        logger.warning("Known correction for %s does not resolve: %s", url, correction)

    for candidate in candidate_urls(url):
        if candidate == correction:
            continue
        if (await probe_url(client, candidate)).working:
            return None, candidate
    return None, None


async def check_broker_link(client: httpx.AsyncClient, source: str, url: str) -> LinkCheckResult:
    probe = await probe_url(client, url)
    result = LinkCheckResult(
        source=source,
        url=url,
        working=probe.working,
        status_code=probe.status_code,
        error=probe.error,
        timed_out=probe.timed_out,
    )
    if not result.working:
        logger.info("Broken opt-out link: %s - %s (%s)", source, url, probe.error or probe.status_code)
        result.corrected_url, result.suggested_url = await find_replacement(client, url)
    return result


async def check_opt_out_links(
    links: Optional[Iterable[tuple[str, str]]] = None,
    client: Optional[httpx.AsyncClient] = None,
    deadline: Optional[Deadline] = None,
    concurrency: Optional[int] = None,
) -> LinkHealthReport:
    """Check (source, url) pairs, by default every directory opt-out URL."""
    if links is None:
        links = [(broker.key, broker.opt_out_url) for broker in list_brokers() if broker.opt_out_url]
    links = list(links)
    report = LinkHealthReport()
    semaphore = asyncio.Semaphore(concurrency or settings.link_check_concurrency)

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=settings.link_check_timeout, headers=REQUEST_HEADERS)

    async def check_with_limit(source: str, url: str) -> Optional[LinkCheckResult]:
        async with semaphore:
            if deadline is not None and deadline.expired():
                return None
            return await check_broker_link(client, source, url)

    try:
        results = await asyncio.gather(*(check_with_limit(source, url) for source, url in links))
    finally:
        if owns_client:
            await client.aclose()

    for result in results:
        if result is None:
            report.skipped += 1
            report.partial = True
        else:
            report.add(result)

    logger.info(
        "Link check complete: %d checked, %d working, %d broken, %d errors (%d timeouts), %d corrected, %d suggested",
        report.checked, report.working, report.broken, report.errors, report.timeouts,
        report.corrected, report.suggested,
    )
    return report


async def link_health_job(session_factory: async_sessionmaker[AsyncSession], deadline: Deadline) -> JobOutcome:
    """Scheduled entrypoint for the link health monitor."""
    report = await check_opt_out_links(deadline=deadline)
    report_dict = report.to_dict()
    emailed = await send_link_health_report(get_email_provider(), report_dict)

    message = f"{report.checked} checked, {report.working} working, {len(report.broken_links)} need attention"
    if report.partial:
        message += f", {report.skipped} skipped at deadline"
    report_dict["report_emailed"] = emailed
    return JobOutcome(
        status=JobStatus.PARTIAL if report.partial else JobStatus.SUCCESS,
        message=message,
        metadata=report_dict,
    )
