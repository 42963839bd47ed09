"""Tests for applying to vacancies and the local application history."""

import httpx
import pytest
import respx

from hh_apply.core.applications import format_salary
from hh_apply.db import ApplicationRecord, ApplicationStatus
from hh_apply.errors import NotFound, ProviderError, RequireReauth

from factories import HH_API, vacancy


def make_record(user_id="u1", vacancy_id="v1", applied_at=None):
    return ApplicationRecord(
        user_id=user_id,
        vacancy_id=vacancy_id,
        vacancy_title="Python Developer",
        company_name="Acme",
        applied_at=applied_at or 0,
    )


class TestFormatSalary:
    @pytest.mark.parametrize("salary,expected", [
        (None, "Не указана"),
        ({}, "Не указана"),
        ({"from": 100000, "to": 150000, "currency": "RUR"}, "100000 - 150000 RUR"),
        ({"from": 100000, "to": None, "currency": "RUR"}, "от 100000 RUR"),
        ({"from": None, "to": 150000, "currency": "USD"}, "до 150000 USD"),
        ({"from": None, "to": None, "currency": "RUR"}, "Не указана"),
    ])
    def test_format(self, salary, expected):
        assert format_salary(salary) == expected


class TestApply:
    @pytest.mark.asyncio
    @respx.mock
    async def test_apply_records_application_once(self, services, clock):
        await services.token_store.save_token("u1", "access-1", "refresh-1", 3600)
        vacancy_route = respx.get(f"{HH_API}/vacancies/v1").mock(return_value=httpx.Response(200, json=vacancy(
            "v1", "Python Developer", salary={"from": 200000, "to": None, "currency": "RUR"},
        )))
        negotiation_route = respx.post(f"{HH_API}/negotiations").mock(return_value=httpx.Response(201))

        first = await services.application_service.apply("u1", "v1", "r1", "Hello")

        assert first.already_applied is False
        record = first.application
        assert record.vacancy_title == "Python Developer"
        assert record.company_name == "Acme"
        assert record.salary_display == "от 200000 RUR"
        assert record.location == "Москва"
        assert record.url == "https://hh.ru/vacancy/v1"
        assert record.status == "applied"
        assert record.applied_at == clock()
        assert record.cover_letter == "Hello"

        second = await services.application_service.apply("u1", "v1", "r1", "Hello")

        assert second.already_applied is True
        assert second.application.id == record.id
        assert vacancy_route.call_count == 1
        assert negotiation_route.call_count == 1
        assert len(await services.applications.list_for_user("u1")) == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_redirect_url_is_returned(self, services):
        await services.token_store.save_token("u1", "access-1", "refresh-1", 3600)
        respx.get(f"{HH_API}/vacancies/v1").mock(return_value=httpx.Response(200, json=vacancy("v1", "Dev")))
        respx.post(f"{HH_API}/negotiations").mock(
            return_value=httpx.Response(303, headers={"Location": f"{HH_API}/negotiations/9"})
        )

        result = await services.application_service.apply("u1", "v1", "r1")

        assert result.redirect_url == f"{HH_API}/negotiations/9"
        assert result.application.salary_display == "Не указана"

    @pytest.mark.asyncio
    async def test_apply_without_token_requires_reauth(self, services):
        with pytest.raises(RequireReauth):
            await services.application_service.apply("nobody", "v1", "r1")

        assert await services.applications.list_for_user("nobody") == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_failed_negotiation_saves_nothing(self, services):
        await services.token_store.save_token("u1", "access-1", "refresh-1", 3600)
        respx.get(f"{HH_API}/vacancies/v1").mock(return_value=httpx.Response(200, json=vacancy("v1", "Dev")))
        respx.post(f"{HH_API}/negotiations").mock(return_value=httpx.Response(400, json={
            "errors": [{"type": "negotiations", "value": "already_applied"}],
        }))

        with pytest.raises(ProviderError) as exc_info:
            await services.application_service.apply("u1", "v1", "r1")

        assert exc_info.value.status_code == 400
        assert await services.applications.find("u1", "v1") is None


class TestApplicationRepository:
    @pytest.mark.asyncio
    async def test_duplicate_save_keeps_one_row(self, services):
        first, created = await services.applications.save(make_record())
        second, created_again = await services.applications.save(make_record())

        assert created is True
        assert created_again is False
        assert second.id == first.id
        assert len(await services.applications.list_for_user("u1")) == 1

    @pytest.mark.asyncio
    async def test_list_is_newest_first(self, services):
        await services.applications.save(make_record(vacancy_id="old", applied_at=1000))
        await services.applications.save(make_record(vacancy_id="new", applied_at=2000))
        await services.applications.save(make_record(user_id="u2", vacancy_id="other", applied_at=3000))

        records = await services.applications.list_for_user("u1")

        assert [record.vacancy_id for record in records] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_update_status_and_stats(self, services):
        first, _ = await services.applications.save(make_record(vacancy_id="v1"))
        await services.applications.save(make_record(vacancy_id="v2"))
        await services.applications.save(make_record(vacancy_id="v3"))

        updated = await services.applications.update_status(first.id, ApplicationStatus.INVITED, user_id="u1")

        assert updated.status == "invited"
        assert await services.applications.stats("u1") == {
            "total": 3, "applied": 2, "viewed": 0, "invited": 1, "rejected": 0, "cancelled": 0,
        }

    @pytest.mark.asyncio
    async def test_update_status_unknown_id(self, services):
        with pytest.raises(NotFound):
            await services.applications.update_status("missing", ApplicationStatus.VIEWED, user_id="u1")

    @pytest.mark.asyncio
    async def test_update_status_of_another_users_application(self, services):
        record, _ = await services.applications.save(make_record(user_id="u1"))

        with pytest.raises(NotFound):
            await services.applications.update_status(record.id, ApplicationStatus.REJECTED, user_id="u2")
