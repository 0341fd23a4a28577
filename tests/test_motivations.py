import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.errors import ForbiddenError, NotFoundError, ValidationError
from potato_timer.models import Motivation, MotivationMedia, MotivationTag, Tag, TagScope
from potato_timer.schema.request import GoalUpdate, MediaItem, MotivationUpdate
from potato_timer.services import content_service, engagement_service, goal_service, tag_service
from tests.fixtures import image, make_goal, make_motivation, video

pytestmark = pytest.mark.asyncio


async def count(db: AsyncSession, model, *where) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*where))


async def test_create_keeps_media_order(db: AsyncSession, user):
    m = await make_motivation(
        db,
        user,
        title="Before / after",
        content="Six months of running",
        media=[image("https://cdn/1.png"), video("https://cdn/2.mp4", "https://cdn/2.jpg"), image("https://cdn/3.png")],
    )
    assert [x.url for x in m.media] == ["https://cdn/1.png", "https://cdn/2.mp4", "https://cdn/3.png"]
    assert [x.sort_order for x in m.media] == [0, 1, 2]
    assert m.media[1].type == "video"
    assert m.media[1].thumbnail_url == "https://cdn/2.jpg"
    assert m.author.id == user.id
    assert m.view_count == 0
    assert m.like_count == 0


async def test_create_rejects_invalid_type(db: AsyncSession, user):
    with pytest.raises(ValidationError):
        await make_motivation(db, user, type="neutral")
    with pytest.raises(ValidationError):
        await make_motivation(db, user, type=None)


async def test_invalid_media_writes_nothing(db: AsyncSession, user):
    bad = [image("https://cdn/ok.png"), MediaItem(type="audio", url="https://cdn/x.mp3")]
    with pytest.raises(ValidationError):
        await make_motivation(db, user, media=bad)

    with pytest.raises(ValidationError):
        await make_motivation(db, user, media=[MediaItem(type="image", url="  ")])

    assert await count(db, Motivation) == 0
    assert await count(db, MotivationMedia) == 0


async def test_custom_tag_is_created_once_per_user(db: AsyncSession, user, other_user):
    first = await make_motivation(db, user, tags=["focus"])
    second = await make_motivation(db, user, tags=[" focus ", "focus"])
    await make_motivation(db, other_user, tags=["focus"])

    assert first.tags == ["focus"]
    assert second.tags == ["focus"]
    assert await count(db, Tag, Tag.name == "focus", Tag.user_id == user.id) == 1
    assert await count(db, Tag, Tag.name == "focus", Tag.user_id == other_user.id) == 1


async def test_system_tag_is_preferred(db: AsyncSession, user):
    system = await tag_service.create_system_tag(db, "fitness")
    again = await tag_service.create_system_tag(db, "fitness")
    assert again.id == system.id

    m = await make_motivation(db, user, tags=["fitness"])
    assert m.tags == ["fitness"]
    assert await count(db, Tag, Tag.name == "fitness") == 1

    linked = await db.scalar(select(MotivationTag.tag_id).where(MotivationTag.motivation_id == m.id))
    assert linked == system.id


async def test_tag_scope_matches_owner(db: AsyncSession, user):
    uid = user.id
    await make_motivation(db, user, tags=["focus"])
    await tag_service.create_system_tag(db, "fitness")

    owned = await db.scalar(select(Tag).where(Tag.name == "focus"))
    assert (owned.user_id, owned.scope) == (uid, f"user:{uid}")
    assert owned.tag_scope == TagScope.owned(uid)

    shared = await db.scalar(select(Tag).where(Tag.name == "fitness"))
    assert (shared.user_id, shared.scope) == (None, "system")
    assert shared.tag_scope.is_system


async def test_blank_and_overlong_tags(db: AsyncSession, user):
    m = await make_motivation(db, user, tags=["", "   ", "calm"])
    assert m.tags == ["calm"]

    with pytest.raises(ValidationError):
        await make_motivation(db, user, tags=["x" * 51])


async def test_update_replaces_collections(db: AsyncSession, user):
    m = await make_motivation(db, user, tags=["a", "b"], media=[image("https://cdn/1.png")])

    updated = await content_service.update_motivation(
        db,
        user.id,
        m.id,
        MotivationUpdate(media=[video("https://cdn/v.mp4"), image("https://cdn/2.png")], tags=["c"]),
    )
    assert [x.url for x in updated.media] == ["https://cdn/v.mp4", "https://cdn/2.png"]
    assert updated.tags == ["c"]
    assert updated.title == m.title
    assert await count(db, MotivationMedia) == 2

    untouched = await content_service.update_motivation(db, user.id, m.id, MotivationUpdate(title="New title"))
    assert untouched.title == "New title"
    assert [x.url for x in untouched.media] == ["https://cdn/v.mp4", "https://cdn/2.png"]
    assert untouched.tags == ["c"]

    cleared = await content_service.update_motivation(db, user.id, m.id, MotivationUpdate(media=[], tags=[]))
    assert cleared.media == []
    assert cleared.tags == []


async def test_update_with_bad_media_keeps_old_state(db: AsyncSession, user):
    m = await make_motivation(db, user, media=[image("https://cdn/1.png")])

    with pytest.raises(ValidationError):
        await content_service.update_motivation(
            db, user.id, m.id, MotivationUpdate(title="changed", media=[MediaItem(type="gif", url="https://x")])
        )

    detail = await content_service.get_motivation_detail(db, user.id, m.id)
    assert detail.title == m.title
    assert [x.url for x in detail.media] == ["https://cdn/1.png"]


async def test_update_requires_ownership(db: AsyncSession, user, other_user):
    m = await make_motivation(db, other_user)
    with pytest.raises(NotFoundError):
        await content_service.update_motivation(db, user.id, m.id, MotivationUpdate(title="mine"))
    with pytest.raises(NotFoundError):
        await content_service.delete_motivation(db, user.id, m.id)


async def test_detail_visibility(db: AsyncSession, user, other_user):
    private = await make_motivation(db, other_user, is_public=False)

    with pytest.raises(ForbiddenError):
        await content_service.get_motivation_detail(db, user.id, private.id)
    with pytest.raises(ForbiddenError):
        await content_service.get_motivation_detail(db, None, private.id)
    with pytest.raises(NotFoundError):
        await content_service.get_motivation_detail(db, user.id, 9999)

    own = await content_service.get_motivation_detail(db, other_user.id, private.id)
    assert own.id == private.id


async def test_detail_counts_views(db: AsyncSession, user, other_user):
    m = await make_motivation(db, other_user)

    first = await content_service.get_motivation_detail(db, user.id, m.id)
    second = await content_service.get_motivation_detail(db, None, m.id)
    third = await content_service.get_motivation_detail(db, other_user.id, m.id)

    assert [first.view_count, second.view_count, third.view_count] == [1, 2, 3]


async def test_denied_detail_does_not_count_a_view(db: AsyncSession, user, other_user):
    private = await make_motivation(db, other_user, is_public=False)
    with pytest.raises(ForbiddenError):
        await content_service.get_motivation_detail(db, user.id, private.id)

    stored = await db.get(Motivation, private.id, populate_existing=True)
    assert stored.view_count == 0


async def test_public_feed_filters_and_flags(db: AsyncSession, user, other_user):
    calm = await make_motivation(db, other_user, title="Calm", tags=["calm"])
    warning = await make_motivation(db, other_user, title="Warning", type="negative")
    await make_motivation(db, other_user, title="Secret", is_public=False)
    newest = await make_motivation(db, user, title="Mine", tags=["calm"])

    await engagement_service.like(db, user.id, calm.id)
    await engagement_service.favorite(db, user.id, warning.id)

    feed = await content_service.list_public_motivations(db, user.id)
    assert [m.id for m in feed] == [newest.id, warning.id, calm.id]
    flags = {m.id: (m.is_liked, m.is_favorited) for m in feed}
    assert flags[calm.id] == (True, False)
    assert flags[warning.id] == (False, True)
    assert flags[newest.id] == (False, False)

    anonymous = await content_service.list_public_motivations(db)
    assert not any(m.is_liked or m.is_favorited for m in anonymous)

    negative = await content_service.list_public_motivations(db, type="negative")
    assert [m.id for m in negative] == [warning.id]

    tagged = await content_service.list_public_motivations(db, tag="calm")
    assert [m.id for m in tagged] == [newest.id, calm.id]

    paged = await content_service.list_public_motivations(db, page=2, limit=2)
    assert [m.id for m in paged] == [calm.id]

    with pytest.raises(ValidationError):
        await content_service.list_public_motivations(db, type="neutral")


async def test_list_my_motivations_includes_private(db: AsyncSession, user, other_user):
    public = await make_motivation(db, user, title="Out loud")
    private = await make_motivation(db, user, title="Just me", is_public=False)
    await make_motivation(db, other_user)

    mine = await content_service.list_my_motivations(db, user.id)
    assert [m.id for m in mine] == [private.id, public.id]


async def test_delete_motivation_cascades(db: AsyncSession, user, other_user):
    m = await make_motivation(db, user, tags=["calm"], media=[image("https://cdn/1.png")])
    goal = await make_goal(db, user, motivation_ids=[m.id])
    await engagement_service.like(db, other_user.id, m.id)
    await engagement_service.favorite(db, other_user.id, m.id)

    await content_service.delete_motivation(db, user.id, m.id)

    assert await count(db, Motivation) == 0
    assert await count(db, MotivationMedia) == 0
    assert await count(db, MotivationTag) == 0
    # the tag itself stays available
    assert await count(db, Tag, Tag.name == "calm") == 1

    detail = await goal_service.get_goal_detail(db, user.id, goal.id)
    assert detail.motivations == []
    assert await engagement_service.list_favorites(db, other_user.id) == []


async def test_private_motivation_is_hidden_from_feed_after_update(db: AsyncSession, user):
    m = await make_motivation(db, user)
    await content_service.update_motivation(db, user.id, m.id, MotivationUpdate(is_public=False))
    assert await content_service.list_public_motivations(db) == []


async def test_available_tags(db: AsyncSession, user, other_user):
    await tag_service.create_system_tag(db, "study")
    await tag_service.create_system_tag(db, "fitness")
    await make_motivation(db, user, tags=["zen", "alpha"])
    await make_motivation(db, other_user, tags=["theirs"])

    tags = await tag_service.list_available_tags(db, user.id)
    assert [(t.name, t.type) for t in tags] == [
        ("fitness", "system"),
        ("study", "system"),
        ("alpha", "custom"),
        ("zen", "custom"),
    ]


async def test_popular_tags_count_public_posts(db: AsyncSession, user, other_user):
    await tag_service.create_system_tag(db, "study")
    await make_motivation(db, user, tags=["study", "calm"])
    await make_motivation(db, other_user, tags=["study"])
    await make_motivation(db, other_user, tags=["calm"], is_public=False)

    popular = await tag_service.list_popular_tags(db)
    assert [(t.name, t.usage_count) for t in popular] == [("study", 2), ("calm", 1)]

    top = await tag_service.list_popular_tags(db, limit=1)
    assert [t.name for t in top] == ["study"]


async def test_goal_link_survives_motivation_becoming_private(db: AsyncSession, user, other_user):
    shared = await make_motivation(db, other_user)
    goal = await make_goal(db, user, motivation_ids=[shared.id])

    await content_service.update_motivation(db, other_user.id, shared.id, MotivationUpdate(is_public=False))

    # Re-submitting the list is checked again
    with pytest.raises(ValidationError):
        await goal_service.update_goal(db, user.id, goal.id, GoalUpdate(motivation_ids=[shared.id]))
