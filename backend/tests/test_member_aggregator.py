"""
Tests for member_aggregator.py - the company roster that merges membership rows
with profiles pointing at the company.
"""
from uuid import uuid4

import pytest

from app.services.member_aggregator import MemberAggregator
from app.services.results import ErrorKind, Result


@pytest.fixture
def aggregator(db_session):
    return MemberAggregator(db_session)


class TestGetCompanyMembers:
    """Tests for MemberAggregator.get_company_members."""

    def test_merges_rows_with_referencing_profiles_and_heals(
        self, aggregator, make_company, make_profile, make_member, member_count
    ):
        """A is an explicit member, B only names the company: both are returned and B gets a row."""
        google = make_company("Google")
        alice = make_profile(None, first_name="Alice")
        bob = make_profile("google", first_name="Bob", job_title="Designer")
        make_member(alice.id, google.id)
        alice_id, bob_id = alice.id, bob.id

        result = aggregator.get_company_members(google.id)

        assert result.ok
        views = {v.user_id: v for v in result.value}
        assert set(views) == {alice_id, bob_id}
        assert views[alice_id].synthesized is False
        assert views[bob_id].synthesized is True
        assert views[bob_id].job_title == "Designer"
        assert views[bob_id].first_name == "Bob"
        assert views[bob_id].id is not None
        assert member_count(bob_id, google.id) == 1

    def test_second_call_performs_no_writes(
        self, aggregator, make_company, make_profile, statements
    ):
        google = make_company("Google")
        make_profile("Google")
        aggregator.get_company_members(google.id)
        statements.reset()

        result = aggregator.get_company_members(google.id)

        assert statements.writes == []
        assert [v.synthesized for v in result.value] == [False]

    def test_user_with_row_and_matching_profile_listed_once(
        self, aggregator, make_company, make_profile, make_member
    ):
        google = make_company("Google")
        user = make_profile("Google")
        make_member(user.id, google.id)

        views = aggregator.get_company_members(google.id).value

        assert len(views) == 1
        assert views[0].synthesized is False

    def test_id_reference_in_any_case_is_found(self, aggregator, make_company, make_profile):
        google = make_company("Google")
        user = make_profile(f" {str(google.id).upper()} ")
        user_id = user.id

        views = aggregator.get_company_members(google.id).value

        assert [v.user_id for v in views] == [user_id]

    @pytest.mark.parametrize("stored", ["Google\t", "\u00a0GOOGLE\n", "google"])
    def test_name_reference_with_any_whitespace_is_found(self, aggregator, make_company, make_profile, stored):
        """The roster matches the same profiles is_member and the sweep match."""
        google = make_company("Google")
        user_id = make_profile(stored).id

        views = aggregator.get_company_members(google.id).value

        assert [v.user_id for v in views] == [user_id]
        assert aggregator.memberships.is_member(user_id, google.id).value is True

    def test_non_ascii_name_reference_is_found(self, aggregator, make_company, make_profile):
        unilever = make_company("Ünilever")
        user_id = make_profile("ÜNILEVER").id

        views = aggregator.get_company_members(unilever.id).value

        assert [v.user_id for v in views] == [user_id]

    def test_profiles_naming_other_companies_are_excluded(
        self, aggregator, make_company, make_profile
    ):
        google = make_company("Google")
        make_profile("Initech")
        make_profile(None)

        assert aggregator.get_company_members(google.id).value == []

    def test_blank_job_title_falls_back_to_default(self, aggregator, make_company, make_profile):
        google = make_company("Google")
        make_profile("Google", job_title="  ")

        views = aggregator.get_company_members(google.id).value

        assert views[0].job_title == "Member"

    def test_unknown_company_is_not_found(self, aggregator):
        result = aggregator.get_company_members(uuid4())
        assert result.error == ErrorKind.NOT_FOUND

    def test_failed_write_back_is_not_fatal(
        self, aggregator, make_company, make_profile, member_count, monkeypatch
    ):
        """The roster still lists the profile when its membership row cannot be written."""
        google = make_company("Google")
        user = make_profile("Google")
        user_id = user.id
        monkeypatch.setattr(
            aggregator.memberships,
            "insert_if_absent",
            lambda *args, **kwargs: Result.failure(ErrorKind.STORE_UNAVAILABLE, "read-only replica"),
        )

        result = aggregator.get_company_members(google.id)

        assert result.ok
        assert [v.user_id for v in result.value] == [user_id]
        assert result.value[0].id is None
        assert result.value[0].synthesized is True
        assert member_count() == 0

    def test_profile_scan_failure_is_fatal(
        self, aggregator, make_company, monkeypatch
    ):
        google = make_company("Google")
        monkeypatch.setattr(
            aggregator,
            "_profiles_referencing",
            lambda company_id, company_name, deadline: Result.failure(ErrorKind.STORE_UNAVAILABLE, "down"),
        )

        result = aggregator.get_company_members(google.id)

        assert result.error == ErrorKind.STORE_UNAVAILABLE
