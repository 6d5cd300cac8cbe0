"""Tests for the admin user mapper: normalization, validation and filter building."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from songstock.application.mappers import user_management_mapper as mapper
from songstock.domain.dtos import (
    ProductStatistics,
    ProviderManagementDTO,
    ProviderStatistics,
    UserEditDTO,
    UserStatistics,
)
from songstock.domain.entities import Provider, User, UserRole, VerificationStatus
from songstock.domain.exceptions import ValidationException
from songstock.domain.value_objects import SortDirection


def _edit(**overrides: object) -> UserEditDTO:
    values: dict[str, object] = {
        "first_name": "Bob",
        "last_name": "Builder",
        "username": "bob123",
        "email": "bob@example.com",
        "role": UserRole.CUSTOMER,
    }
    values.update(overrides)
    return UserEditDTO(**values)  # type: ignore[arg-type]


class TestSanitizeEditDto:
    def test_username_is_trimmed_and_lowercased(self) -> None:
        dto = mapper.sanitize_edit_dto(_edit(username=" Bob123 "))
        assert dto.username == "bob123"

    def test_email_is_trimmed_and_lowercased(self) -> None:
        dto = mapper.sanitize_edit_dto(_edit(email="  Bob@Example.COM "))
        assert dto.email == "bob@example.com"

    def test_free_text_is_trimmed_but_keeps_case(self) -> None:
        dto = mapper.sanitize_edit_dto(
            _edit(first_name="  Bob ", last_name=" Builder  ", phone=" 555 ")
        )
        assert (dto.first_name, dto.last_name, dto.phone) == ("Bob", "Builder", "555")

    def test_none_fields_stay_none(self) -> None:
        dto = mapper.sanitize_edit_dto(_edit(username=None, phone=None))
        assert dto.username is None
        assert dto.phone is None


class TestValidateEditDto:
    def test_complete_dto_is_valid(self) -> None:
        dto = _edit()
        assert mapper.is_valid_edit_dto(dto)
        mapper.validate_edit_dto(dto)

    @pytest.mark.parametrize("field", ["first_name", "last_name", "username", "email"])
    def test_blank_required_field_is_rejected(self, field: str) -> None:
        dto = mapper.sanitize_edit_dto(_edit(**{field: "   "}))
        assert not mapper.is_valid_edit_dto(dto)
        with pytest.raises(ValidationException, match=field):
            mapper.validate_edit_dto(dto)

    def test_missing_role_is_rejected(self) -> None:
        with pytest.raises(ValidationException, match="role"):
            mapper.validate_edit_dto(_edit(role=None))


class TestToFilter:
    def test_defaults(self) -> None:
        user_filter = mapper.to_filter()
        assert user_filter.page_request.page == 0
        assert user_filter.page_request.size == 20
        assert user_filter.page_request.sort_by == "createdAt"
        assert user_filter.page_request.sort_direction == SortDirection.DESC

    def test_invalid_role_and_status_are_omitted(self) -> None:
        user_filter = mapper.to_filter(role="wizard", verification_status="maybe")
        assert user_filter.role is None
        assert user_filter.verification_status is None

    def test_valid_values_are_parsed(self) -> None:
        after = datetime(2026, 1, 1, tzinfo=UTC)
        user_filter = mapper.to_filter(
            search_query="ana",
            role="provider",
            is_active=False,
            verification_status="pending",
            created_after=after,
            page=2,
            size=5,
            sort_by="username",
            sort_direction="asc",
        )
        assert user_filter.search_query == "ana"
        assert user_filter.role == UserRole.PROVIDER
        assert user_filter.is_active is False
        assert user_filter.verification_status == VerificationStatus.PENDING
        assert user_filter.created_after == after
        assert user_filter.page_request.offset == 10
        assert user_filter.page_request.sort_by == "username"
        assert user_filter.page_request.sort_direction == SortDirection.ASC

    def test_blank_sort_by_falls_back_to_default(self) -> None:
        assert mapper.to_filter(sort_by="  ").page_request.sort_by == "createdAt"


class TestResponses:
    def test_plain_user_has_no_provider_fields(self) -> None:
        user = User(
            id=1, username="ana", email="ana@example.com", first_name="Ana", last_name="G"
        )
        response = mapper.to_management_response(user, total_products=4)
        assert response.provider_id is None
        assert response.business_name is None
        assert response.total_products == 0

    def test_provider_fields_are_copied(self) -> None:
        user = User(
            id=1,
            username="shop",
            email="shop@example.com",
            first_name="S",
            last_name="P",
            role=UserRole.PROVIDER,
        )
        provider = Provider(id=9, user_id=1, business_name="Vinyl Corner")
        response = mapper.to_management_response(user, provider, total_products=3)
        assert response.provider_id == 9
        assert response.business_name == "Vinyl Corner"
        assert response.verification_status == VerificationStatus.PENDING
        assert response.total_products == 3
        assert response.full_name == "S P"


class TestUpdateProvider:
    def test_only_non_none_fields_are_applied(self) -> None:
        provider = Provider(user_id=1, business_name="Old", city="Bogotá")
        dto = ProviderManagementDTO(business_name=" New ", commission_rate=Decimal("12.5"))
        mapper.update_provider_from_management_dto(provider, dto)
        assert provider.business_name == "New"
        assert provider.commission_rate == Decimal("12.5")
        assert provider.city == "Bogotá"
        assert provider.verification_status == VerificationStatus.PENDING

    def test_verification_change_stamps_date(self) -> None:
        provider = Provider(user_id=1, business_name="Shop")
        mapper.update_provider_from_management_dto(
            provider, ProviderManagementDTO(verification_status=VerificationStatus.VERIFIED)
        )
        assert provider.verification_status == VerificationStatus.VERIFIED
        assert provider.verification_date is not None


def test_to_dashboard_flattens_all_counters() -> None:
    stats = mapper.to_dashboard(
        UserStatistics(total_users=3, total_admins=1, total_customers=2, active_users=2,
                       inactive_users=1),
        ProviderStatistics(pending_providers=4),
        ProductStatistics(total_products=5, digital_products=2, physical_products=3),
        users_registered_this_month=2,
    )
    assert stats.total_users == 3
    assert stats.pending_providers == 4
    assert stats.physical_products == 3
    assert stats.users_registered_this_month == 2
    assert stats.providers_verified_this_month == 0
