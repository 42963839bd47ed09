"""Apply to a vacancy and keep the local application history."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from hh_apply.core.hh_proxy import HHApiProxy
from hh_apply.db import ApplicationRecord, ApplicationRepository, ApplicationStatus
from hh_apply.errors import RequireReauth
from hh_apply.oauth.token_store import TokenStore
from hh_apply.utils import LogEvent, LogRecord, info, now_ms

NO_SALARY = "Не указана"


def format_salary(salary: Optional[Dict[str, Any]]) -> str:
    if not salary:
        return NO_SALARY
    low, high = salary.get("from"), salary.get("to")
    currency = salary.get("currency") or ""
    if low and high:
        return f"{low} - {high} {currency}".strip()
    if low:
        return f"от {low} {currency}".strip()
    if high:
        return f"до {high} {currency}".strip()
    return NO_SALARY


@dataclass
class ApplyResult:
    application: ApplicationRecord
    already_applied: bool = False
    redirect_url: Optional[str] = None


async def require_token(token_store: TokenStore, user_id: str) -> str:
    """Access token for the user or ``RequireReauth``."""
    record = await token_store.get_latest_token(user_id)
    if record is None:
        info(LogRecord(
            event=LogEvent.TOKEN_UNAVAILABLE.value,
            message=f"No valid token for user {user_id}",
            data={"user_id": user_id},
        ))
        raise RequireReauth(
            "No valid token found. Please re-authenticate with HH.ru",
            description="You need to re-authenticate with HH.ru",
        )
    return record.access_token


class ApplicationService:
    def __init__(
        self,
        token_store: TokenStore,
        proxy: HHApiProxy,
        applications: ApplicationRepository,
        clock: Callable[[], int] = now_ms,
    ):
        self.token_store = token_store
        self.proxy = proxy
        self.applications = applications
        self.clock = clock

    async def apply(
        self,
        user_id: str,
        vacancy_id: str,
        resume_id: str,
        cover_letter: Optional[str] = None,
    ) -> ApplyResult:
        existing = await self.applications.find(user_id, vacancy_id)
        if existing is not None:
            info(LogRecord(
                event=LogEvent.APPLICATION_ALREADY_EXISTS.value,
                message=f"User {user_id} already applied to vacancy {vacancy_id}",
                data={"user_id": user_id, "vacancy_id": vacancy_id},
            ))
            return ApplyResult(application=existing, already_applied=True)

        token = await require_token(self.token_store, user_id)
        vacancy = await self.proxy.get_vacancy(token, vacancy_id)
        negotiation = await self.proxy.submit_negotiation(token, vacancy_id, resume_id, cover_letter)

        record = ApplicationRecord(
            user_id=user_id,
            vacancy_id=vacancy_id,
            vacancy_title=vacancy.get("name") or "",
            company_name=(vacancy.get("employer") or {}).get("name") or "",
            salary_display=format_salary(vacancy.get("salary")),
            location=(vacancy.get("area") or {}).get("name"),
            applied_at=self.clock(),
            status=ApplicationStatus.APPLIED.value,
            url=vacancy.get("alternate_url"),
            cover_letter=cover_letter or "",
        )
        saved, created = await self.applications.save(record)
        return ApplyResult(
            application=saved,
            already_applied=not created,
            redirect_url=negotiation["redirect_url"],
        )
