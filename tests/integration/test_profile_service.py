"""Tests for profile pages, self edits, the admin console and co-author search."""

import uuid

import pytest
from sqlalchemy import select

from minjok.kernel.errors import ForbiddenError, NotFoundError, ValidationError
from minjok.kernel.identity.actor import Actor
from minjok.kernel.identity.profile_cache import ProfileCache
from minjok.kernel.models.base import enum_value
from minjok.kernel.models.event_log import EventLog, EventType
from minjok.kernel.models.profile import AdminType
from minjok.services.profile_service import ProfileService


@pytest.fixture
def cache() -> ProfileCache:
    return ProfileCache(ttl=60)


@pytest.fixture
def profiles(db_session, cache) -> ProfileService:
    return ProfileService(db_session, cache=cache)


class TestProfilePage:
    async def test_visitors_see_published_papers_only(
        self, profiles, article_service, make_published_paper, author, author_actor, other_actor, admin_actor, make_file
    ):
        published = await make_published_paper("Public work")
        draft = await article_service.create_article(author_actor, "Private draft", make_file())

        public = await profiles.get_profile_detail(author.id, None)
        assert [p.id for p in public.papers] == [published.id]
        stranger = await profiles.get_profile_detail(author.id, other_actor)
        assert [p.id for p in stranger.papers] == [published.id]

        for viewer in (author_actor, admin_actor):
            detail = await profiles.get_profile_detail(author.id, viewer)
            assert {p.id for p in detail.papers} == {published.id, draft.id}

    async def test_missing_profile(self, profiles):
        with pytest.raises(NotFoundError):
            await profiles.get_profile_detail(uuid.uuid4())


class TestSelfEdit:
    async def test_update_name_and_intro(self, profiles, author_actor, cache):
        cache.put("token", author_actor)

        profile = await profiles.update_own_profile(author_actor, full_name=" Kim Writer ", intro="  ")

        assert profile.full_name == "Kim Writer"
        assert profile.intro is None
        assert cache.get("token") is None

    async def test_blank_name_rejected(self, profiles, author_actor):
        with pytest.raises(ValidationError, match="Name is required"):
            await profiles.update_own_profile(author_actor, full_name="   ")


class TestAdminConsole:
    async def test_admin_changes_role(self, db_session, profiles, admin_actor, other, cache):
        cache.put("other-token", Actor.from_profile(other))

        profile = await profiles.admin_update_profile(admin_actor, other.id, role="mentor")

        assert enum_value(profile.role) == "mentor"
        assert cache.get("other-token") is None

        await db_session.flush()
        event = (
            await db_session.execute(
                select(EventLog).where(EventLog.event_type == EventType.PROFILE_ROLE_CHANGED.value)
            )
        ).scalar_one()
        assert event.payload == {
            "before": {"role": "mentee", "admin_type": "user"},
            "after": {"role": "mentor", "admin_type": "user"},
        }

    async def test_admin_type_flag_grants_admin(self, profiles, admin_actor, other):
        profile = await profiles.admin_update_profile(admin_actor, other.id, admin_type="admin")

        assert Actor.from_profile(profile).is_admin
        assert enum_value(profile.role) == "mentee"

    async def test_non_admin_forbidden(self, profiles, mentor_actor, other):
        with pytest.raises(ForbiddenError):
            await profiles.admin_update_profile(mentor_actor, other.id, role="admin")

    async def test_flag_admin_may_use_console(self, make_profile, profiles, other):
        flagged = await make_profile("Flag Admin", admin_type=AdminType.ADMIN)

        profile = await profiles.admin_update_profile(Actor.from_profile(flagged), other.id, role="prof")
        assert enum_value(profile.role) == "prof"

    @pytest.mark.parametrize("field,value,message", [("role", "dean", "Unknown role"), ("admin_type", "root", "Unknown admin type")])
    async def test_unknown_values_rejected(self, profiles, admin_actor, other, field, value, message):
        with pytest.raises(ValidationError, match=message):
            await profiles.admin_update_profile(admin_actor, other.id, **{field: value})

    async def test_list_profiles_requires_admin(self, profiles, admin_actor, other_actor, author, other):
        listed = {p.id for p in await profiles.list_profiles(admin_actor)}
        assert {author.id, other.id} <= listed

        with pytest.raises(ForbiddenError):
            await profiles.list_profiles(other_actor)


class TestSearch:
    async def test_search_by_name_or_email(self, make_profile, profiles):
        han = await make_profile("Han Seo-yeon", email="hsy@school.kr")
        await make_profile("Oh Ji-ho", email="ojh@school.kr")

        by_name = await profiles.search_profiles("seo")
        assert [p.id for p in by_name] == [han.id]

        by_email = await profiles.search_profiles("SCHOOL.KR")
        assert [p.full_name for p in by_email] == ["Han Seo-yeon", "Oh Ji-ho"]

    async def test_short_terms_return_nothing(self, profiles, author):
        assert await profiles.search_profiles("K") == []
        assert await profiles.search_profiles(None) == []

    async def test_excludes_searcher(self, profiles, author, other):
        results = await profiles.search_profiles("example.com", exclude_id=author.id)
        assert [p.id for p in results] == [other.id]
