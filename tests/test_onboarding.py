"""Community and technology steps of the onboarding wizard."""

from __future__ import annotations

from knowex.models.community import TechnologySelection
from knowex.models.enums import JoinRequestStatus, Route
from knowex.models.service_models import OnboardingErrorCode
from knowex.services.onboarding_service import (
    ALREADY_SELECTED_MESSAGE,
    JOIN_REQUEST_APPROVED,
    JOIN_REQUEST_FAILED,
    JOIN_REQUEST_PENDING,
    JOIN_REQUEST_SENT,
    REAUTH_MESSAGE,
    SELECT_COMMUNITY_MESSAGE,
    SELECT_TECHNOLOGY_MESSAGE,
)

from tests.fakes import unique_violation


def _interests(fake, user_id):
    return sorted(r["tech_id"] for r in fake.rows("user_technologies") if r["user_id"] == user_id)


def _users_row(fake, user_id):
    return next(r for r in fake.rows("users") if r["user_id"] == user_id)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

def test_communities_are_active_and_largest_first(onboarding_service, catalog):
    result = onboarding_service.list_communities()

    assert result.success is True
    assert [c.name for c in result.data] == ["Data", "Web"]


def test_technologies_are_grouped_by_category(onboarding_service, catalog):
    result = onboarding_service.list_technologies(1)

    assert result.success is True
    grouped = {category: [t.name for t in techs] for category, techs in result.data.items()}
    assert grouped == {
        "Backend": ["Django"],
        "Other": ["Flask"],
        "Frontend": ["React", "Vue"],
    }


def test_catalog_errors_are_reported_as_unavailable(onboarding_service, fake):
    fake.failures[("communities", "select")] = ConnectionError("timeout")

    result = onboarding_service.list_communities()

    assert result.success is False
    assert result.status_code == 503


def test_full_catalog_lists_every_active_technology(onboarding_service, catalog):
    result = onboarding_service.list_all_technologies()

    assert [t.name for t in result.data] == ["Django", "Flask", "Pandas", "React", "Vue"]


# ---------------------------------------------------------------------------
# Step A: community
# ---------------------------------------------------------------------------

def test_selecting_a_community_files_one_pending_request(
    onboarding_service, catalog, signed_in_user
):
    first = onboarding_service.select_community(1)
    second = onboarding_service.select_community(1)

    assert first.success is True
    assert (first.title, first.message) == JOIN_REQUEST_SENT
    assert first.next_route == Route.ONBOARDING_TECHNOLOGIES
    assert first.join.already_requested is False

    assert second.success is True
    assert (second.title, second.message) == JOIN_REQUEST_PENDING
    assert second.join.already_requested is True
    assert second.next_route == Route.ONBOARDING_TECHNOLOGIES

    requests = catalog.rows("community_join_requests")
    assert len(requests) == 1
    assert requests[0]["user_id"] == signed_in_user.user_id
    assert requests[0]["status"] == "pending"


def test_approved_member_advances_without_a_new_request(
    onboarding_service, catalog, signed_in_user
):
    catalog.seed(
        "community_join_requests",
        {"community_id": 2, "user_id": signed_in_user.user_id, "status": "approved"},
    )

    result = onboarding_service.select_community(2)

    assert (result.title, result.message) == JOIN_REQUEST_APPROVED
    assert result.join.status == JoinRequestStatus.APPROVED
    assert len(catalog.rows("community_join_requests")) == 1


def test_rejected_request_allows_a_new_one(onboarding_service, catalog, signed_in_user):
    catalog.seed(
        "community_join_requests",
        {"community_id": 2, "user_id": signed_in_user.user_id, "status": "rejected"},
    )

    result = onboarding_service.select_community(2)

    assert (result.title, result.message) == JOIN_REQUEST_SENT
    assert len(catalog.rows("community_join_requests")) == 2


def test_concurrent_duplicate_request_counts_as_pending(
    onboarding_service, catalog, signed_in_user
):
    catalog.failures[("community_join_requests", "insert")] = unique_violation(
        "community_join_requests", ("user_id", "community_id")
    )

    result = onboarding_service.select_community(1)

    assert result.success is True
    assert (result.title, result.message) == JOIN_REQUEST_PENDING


def test_no_community_selected(onboarding_service):
    result = onboarding_service.select_community(None)

    assert result.success is False
    assert result.error_code == OnboardingErrorCode.VALIDATION_ERROR
    assert result.message == SELECT_COMMUNITY_MESSAGE


def test_join_request_failure_does_not_advance(onboarding_service, catalog, signed_in_user):
    catalog.failures[("community_join_requests", "insert")] = RuntimeError("store offline")

    result = onboarding_service.select_community(1)

    assert result.success is False
    assert result.message == JOIN_REQUEST_FAILED
    assert result.next_route is None


def test_join_request_requires_a_session(onboarding_service, catalog):
    result = onboarding_service.select_community(1)

    assert result.success is False
    assert result.error_code == OnboardingErrorCode.AUTH_REQUIRED
    assert result.message == "You must be signed in to request to join a community."
    assert catalog.rows("community_join_requests") == []


# ---------------------------------------------------------------------------
# Step B: technologies
# ---------------------------------------------------------------------------

def test_completing_onboarding_records_interests(onboarding_service, catalog, signed_in_user, config):
    result = onboarding_service.complete_onboarding([5, 1, 3, 1])

    assert result.success is True
    assert result.inserted_count == 3
    assert result.next_route == Route.HOME
    assert result.redirect_delay_s == config.ONBOARDING_REDIRECT_DELAY_S
    assert _interests(catalog, signed_in_user.user_id) == [1, 3, 5]

    row = _users_row(catalog, signed_in_user.user_id)
    assert row["onboarded"] is True
    assert row["updated_at"]
    account = catalog.auth.accounts["ada@example.com"]["user"]
    assert account.user_metadata["onboarded"] is True


def test_overlapping_selection_is_rejected_as_a_whole(onboarding_service, catalog, signed_in_user):
    assert onboarding_service.complete_onboarding([1, 3, 5]).success is True

    result = onboarding_service.complete_onboarding([3, 4])

    assert result.success is False
    assert result.error_code == OnboardingErrorCode.ALREADY_SELECTED
    assert result.error_message == ALREADY_SELECTED_MESSAGE
    # No partial insert of 4, and the flag stays set.
    assert _interests(catalog, signed_in_user.user_id) == [1, 3, 5]
    assert _users_row(catalog, signed_in_user.user_id)["onboarded"] is True


def test_failed_insert_leaves_the_user_not_onboarded(onboarding_service, catalog, signed_in_user):
    catalog.failures[("user_technologies", "insert")] = RuntimeError("store offline")

    result = onboarding_service.complete_onboarding([1])

    assert result.success is False
    assert result.error_code == OnboardingErrorCode.NETWORK_ERROR
    assert _users_row(catalog, signed_in_user.user_id)["onboarded"] is False


def test_empty_selection_is_rejected(onboarding_service, catalog, signed_in_user):
    result = onboarding_service.complete_onboarding([])

    assert result.error_code == OnboardingErrorCode.VALIDATION_ERROR
    assert result.error_message == SELECT_TECHNOLOGY_MESSAGE
    assert catalog.calls_to("user_technologies") == []


def test_completion_requires_a_session(onboarding_service, catalog):
    result = onboarding_service.complete_onboarding([1])

    assert result.error_code == OnboardingErrorCode.AUTH_REQUIRED
    assert result.error_message == REAUTH_MESSAGE
    assert catalog.rows("user_technologies") == []


def test_metadata_mirror_failure_is_not_fatal(onboarding_service, catalog, signed_in_user):
    catalog.auth.current = None  # update_user now fails

    result = onboarding_service.complete_onboarding([2])

    assert result.success is True
    assert _users_row(catalog, signed_in_user.user_id)["onboarded"] is True


def test_selection_toggles():
    selection = TechnologySelection()

    assert selection.toggle(3) is True
    assert selection.toggle(5) is True
    assert selection.toggle(3) is False
    assert selection.as_sorted_ids() == [5]
    assert selection.count == 1


# ---------------------------------------------------------------------------
# Skip
# ---------------------------------------------------------------------------

def test_skip_marks_onboarded_without_rows(onboarding_service, catalog, signed_in_user):
    result = onboarding_service.skip_onboarding()

    assert result.success is True
    assert result.next_route == Route.HOME
    assert _users_row(catalog, signed_in_user.user_id)["onboarded"] is True
    assert catalog.rows("user_technologies") == []
    assert catalog.rows("community_join_requests") == []


def test_skip_routes_home_even_when_the_write_fails(onboarding_service, catalog, signed_in_user):
    catalog.failures[("users", "update")] = RuntimeError("store offline")

    result = onboarding_service.skip_onboarding()

    assert result.success is False
    assert result.next_route == Route.HOME
