"""
Tests for membership_store.py - insert-if-absent membership writes and the
self-healing membership check.
"""
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.models.profile import Profile
from app.services.membership_store import MembershipStore, profile_references_company
from app.services.results import ErrorKind, Result

from tests.fixtures.company_fixtures import CountdownDeadline


@pytest.fixture
def store(db_session):
    return MembershipStore(db_session, default_job_title="Member")


def _profile_company(db_session, profile_id):
    return db_session.query(Profile.company).filter(Profile.id == profile_id).scalar()


class TestProfileReferencesCompany:
    def test_matches_id_and_name_case_insensitively(self):
        company_id = uuid4()
        assert profile_references_company(str(company_id), company_id, "Google")
        assert profile_references_company(str(company_id).upper(), company_id, "Google")
        assert profile_references_company("  gOOgle ", company_id, "Google")

    def test_rejects_blank_and_other_companies(self):
        company_id = uuid4()
        assert not profile_references_company(None, company_id, "Google")
        assert not profile_references_company("   ", company_id, "Google")
        assert not profile_references_company("Alphabet", company_id, "Google")
        assert not profile_references_company(str(uuid4()), company_id, "Google")


class TestAddMember:
    """Tests for MembershipStore.add_member."""

    def test_creates_one_row_and_rewrites_profile(
        self, db_session, store, make_company, make_profile, member_count
    ):
        """Adding U to G1 creates one membership and points U's profile at G1's id."""
        google = make_company("Google")
        user = make_profile("google", job_title="Engineer")

        result = store.add_member(user.id, google.id, "Software Engineer", "Search")

        assert result.ok
        assert result.value.created is True
        assert result.value.conflict_ignored is False
        assert result.value.member.job_title == "Software Engineer"
        assert result.value.member.department == "Search"
        assert member_count(user.id, google.id) == 1
        assert _profile_company(db_session, user.id) == str(google.id)

    def test_existing_membership_is_returned_without_writes(
        self, store, make_company, make_profile, make_member, member_count, statements
    ):
        google = make_company("Google")
        user = make_profile(None)
        existing = make_member(user.id, google.id, job_title="Engineer")
        statements.reset()

        result = store.add_member(user.id, google.id, "Something Else")

        assert result.ok
        assert result.value.created is False
        assert result.value.member.id == existing.id
        assert result.value.member.job_title == "Engineer"
        assert statements.writes == []
        assert member_count(user.id, google.id) == 1

    def test_repeat_call_performs_no_writes(self, store, make_company, make_profile, statements):
        google = make_company("Google")
        user = make_profile("Google")
        store.add_member(user.id, google.id, "Engineer")
        statements.reset()

        store.add_member(user.id, google.id, "Engineer")

        assert statements.writes == []

    def test_profile_already_canonical_is_not_rewritten(
        self, store, make_company, make_profile, statements
    ):
        google = make_company("Google")
        user = make_profile(str(google.id))
        statements.reset()

        store.add_member(user.id, google.id, "Engineer")

        assert statements.touching("UPDATE profiles") == []

    def test_blank_job_title_uses_default(self, store, make_company, make_profile):
        google = make_company("Google")
        user = make_profile(None)

        result = store.add_member(user.id, google.id, "   ")

        assert result.value.member.job_title == "Member"

    def test_unknown_company_is_not_found(self, store, make_profile, member_count):
        user = make_profile(None)
        result = store.add_member(user.id, uuid4(), "Engineer")
        assert result.error == ErrorKind.NOT_FOUND
        assert member_count() == 0

    def test_unknown_profile_is_not_found(self, store, make_company, member_count):
        google = make_company("Google")
        result = store.add_member(uuid4(), google.id, "Engineer")
        assert result.error == ErrorKind.NOT_FOUND
        assert member_count() == 0

    def test_concurrent_insert_is_reported_as_conflict(
        self, db_session, store, make_company, make_profile, make_member, member_count, monkeypatch
    ):
        """The loser of a race gets the winner's row back and a conflict flag."""
        google = make_company("Google")
        user = make_profile("Google")
        winner = make_member(user.id, google.id, job_title="Engineer")
        # Simulate the pre-check running before the concurrent insert committed
        monkeypatch.setattr(
            store, "get_member", lambda user_id, company_id, deadline=None: Result.success(None)
        )

        result = store.add_member(user.id, google.id, "Manager")

        assert result.ok
        assert result.value.created is False
        assert result.value.conflict_ignored is True
        assert result.value.member.id == winner.id
        assert member_count(user.id, google.id) == 1
        assert _profile_company(db_session, user.id) == "Google"

    def test_store_failure_leaves_profile_untouched(
        self, db_session, store, make_company, make_profile, member_count, monkeypatch
    ):
        google = make_company("Google")
        user = make_profile("google")

        def _boom(values):
            raise OperationalError("INSERT INTO company_members", {}, Exception("connection lost"))

        monkeypatch.setattr(store, "_insert_if_absent", _boom)

        result = store.add_member(user.id, google.id, "Engineer")

        assert result.error == ErrorKind.STORE_UNAVAILABLE
        assert member_count() == 0
        assert _profile_company(db_session, user.id) == "google"

    def test_cancelled_add_member_is_not_partially_applied(
        self, db_session, store, make_company, make_profile, member_count
    ):
        """A deadline expiring after the flushed insert discards it with the rest of the call."""
        initech = make_company("Initech")
        user = make_profile("Initech")
        user_id = user.id

        # membership, company and profile reads, the insert, then the write-back expires
        result = store.add_member(user_id, initech.id, "Engineer", deadline=CountdownDeadline(4))

        assert result.error == ErrorKind.CANCELLED
        db_session.commit()
        assert member_count() == 0
        assert _profile_company(db_session, user_id) == "Initech"


class TestInsertIfAbsent:
    def test_second_insert_is_ignored(self, store, make_company, make_profile, member_count):
        google = make_company("Google")
        user = make_profile(None)

        first = store.insert_if_absent(user.id, google.id, "Engineer")
        second = store.insert_if_absent(user.id, google.id, "Engineer")

        assert first.value is True
        assert second.value is False
        assert member_count(user.id, google.id) == 1

    def test_uncommitted_insert_is_discarded_on_rollback(
        self, db_session, store, make_company, make_profile, member_count
    ):
        google = make_company("Google")
        user = make_profile(None)

        store.insert_if_absent(user.id, google.id, "Engineer", commit=False)
        db_session.rollback()

        assert member_count() == 0


class TestIsMember:
    """Tests for MembershipStore.is_member."""

    def test_explicit_row_is_a_member(self, store, make_company, make_profile, make_member):
        google = make_company("Google")
        user = make_profile(None)
        make_member(user.id, google.id)

        assert store.is_member(user.id, google.id).value is True

    def test_profile_reference_heals_membership(
        self, db_session, store, make_company, make_profile, member_count, statements
    ):
        """First call adds the missing row, the second is answered from memberships alone."""
        google = make_company("Google")
        user = make_profile("GOOGLE", job_title="Analyst")

        assert store.is_member(user.id, google.id).value is True
        assert member_count(user.id, google.id) == 1
        assert _profile_company(db_session, user.id) == str(google.id)

        statements.reset()
        assert store.is_member(user.id, google.id).value is True
        assert statements.touching("profiles") == []
        assert statements.writes == []

    def test_healed_row_keeps_profile_job_title(self, db_session, store, make_company, make_profile):
        google = make_company("Google")
        user = make_profile("Google", job_title="Analyst", department="Research")

        store.is_member(user.id, google.id)

        rows = store.get_user_companies(user.id).value
        assert [(m.job_title, m.department) for m, _ in rows] == [("Analyst", "Research")]

    def test_profile_naming_another_company_is_not_a_member(
        self, store, make_company, make_profile, member_count
    ):
        google = make_company("Google")
        user = make_profile("Initech")

        assert store.is_member(user.id, google.id).value is False
        assert member_count() == 0

    def test_missing_profile_or_company_is_not_a_member(self, store, make_company, make_profile):
        google = make_company("Google")
        user = make_profile("Google")

        assert store.is_member(uuid4(), google.id).value is False
        assert store.is_member(user.id, uuid4()).value is False


class TestReads:
    def test_user_companies_are_joined_with_company_rows(
        self, store, make_company, make_profile, make_member
    ):
        google = make_company("Google")
        initech = make_company("Initech")
        user = make_profile(None)
        make_member(user.id, google.id)
        make_member(user.id, initech.id)

        rows = store.get_user_companies(user.id).value

        assert {company.name for _, company in rows} == {"Google", "Initech"}

    def test_member_pairs(self, store, make_company, make_profile, make_member):
        google = make_company("Google")
        user = make_profile(None)
        make_member(user.id, google.id)

        assert store.member_pairs().value == {(user.id, google.id)}
