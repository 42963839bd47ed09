"""Sequential bulk apply over a saved search filter."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from hh_apply.errors import HHApplyError, RequireReauth
from hh_apply.models import SearchFilter
from hh_apply.utils import LogEvent, LogRecord, error, info, warning


@dataclass
class BulkApplyReport:
    total: int = 0
    applied: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    require_reauth: bool = False

    @property
    def processed(self) -> int:
        return self.applied + self.skipped + self.failed


class AutoApplicator:
    """
    Search once, then apply to each vacancy in turn with a pause between
    requests. A failed vacancy is counted and the loop moves on; losing
    authorization stops the run.
    """

    def __init__(
        self,
        backend,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_progress: Optional[Callable[[int, int, Dict[str, Any], str], None]] = None,
    ):
        self.backend = backend
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.on_progress = on_progress

    async def run(self, user_id: str, search_filter: SearchFilter, resume_id: str) -> BulkApplyReport:
        report = BulkApplyReport()
        search = await self.backend.search(user_id, search_filter)
        vacancies = (search.get("items") or [])[: search_filter.limit]
        report.total = len(vacancies)

        info(LogRecord(
            event=LogEvent.AUTO_APPLY_START.value,
            message=f"Applying to {report.total} vacancies",
            data={"user_id": user_id, "total": report.total},
        ))

        for index, vacancy in enumerate(vacancies):
            if index:
                await self.sleep(self.delay_seconds)

            vacancy_id = str(vacancy.get("id"))
            try:
                result = await self.backend.apply(
                    user_id, vacancy_id, resume_id, search_filter.cover_letter or None,
                )
            except RequireReauth as e:
                report.require_reauth = True
                report.failed += 1
                report.errors.append({"vacancyId": vacancy_id, "error": str(e)})
                error(LogRecord(
                    event=LogEvent.AUTO_APPLY_ABORTED.value,
                    message="Authorization lost, stopping bulk apply",
                    data={"user_id": user_id, "vacancy_id": vacancy_id},
                ), exc=e)
                self._progress(index, report.total, vacancy, "reauth")
                break
            except HHApplyError as e:
                report.failed += 1
                report.errors.append({
                    "vacancyId": vacancy_id,
                    "error": str(e),
                    "description": e.description,
                })
                warning(LogRecord(
                    event=LogEvent.AUTO_APPLY_VACANCY_FAILED.value,
                    message=f"Failed to apply to vacancy {vacancy_id}",
                    data={"user_id": user_id, "vacancy_id": vacancy_id},
                ), exc=e)
                self._progress(index, report.total, vacancy, "failed")
                continue

            if result.get("alreadyApplied"):
                report.skipped += 1
                self._progress(index, report.total, vacancy, "skipped")
            else:
                report.applied += 1
                self._progress(index, report.total, vacancy, "applied")

        info(LogRecord(
            event=LogEvent.AUTO_APPLY_COMPLETE.value,
            message=(
                f"Bulk apply finished: applied {report.applied}, skipped {report.skipped}, "
                f"failed {report.failed} of {report.total}"
            ),
            data={"user_id": user_id},
        ))
        return report

    def _progress(self, index: int, total: int, vacancy: Dict[str, Any], outcome: str) -> None:
        if self.on_progress:
            self.on_progress(index + 1, total, vacancy, outcome)
