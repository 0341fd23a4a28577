import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from potato_timer.errors import ConflictError, ForbiddenError, NotFoundError
from potato_timer.models import Motivation
from potato_timer.services import engagement_service
from tests.fixtures import make_motivation

pytestmark = pytest.mark.asyncio


async def like_count(db: AsyncSession, motivation_id: int) -> int:
    stored = await db.get(Motivation, motivation_id, populate_existing=True)
    return stored.like_count


async def test_like_once(db: AsyncSession, user, other_user):
    m = await make_motivation(db, other_user)

    assert await engagement_service.like(db, user.id, m.id) == 1
    with pytest.raises(ConflictError):
        await engagement_service.like(db, user.id, m.id)

    assert await like_count(db, m.id) == 1
    assert await engagement_service.recount_likes(db, m.id) == 1


async def test_likes_from_several_users(db: AsyncSession, user, other_user):
    m = await make_motivation(db, user)
    assert await engagement_service.like(db, user.id, m.id) == 1
    assert await engagement_service.like(db, other_user.id, m.id) == 2


async def test_unlike_never_goes_below_zero(db: AsyncSession, user, other_user):
    m = await make_motivation(db, other_user)

    await engagement_service.like(db, user.id, m.id)
    assert await engagement_service.unlike(db, user.id, m.id) is True
    assert await engagement_service.unlike(db, user.id, m.id) is False
    assert await like_count(db, m.id) == 0

    # A like row left behind with the counter already at zero
    await engagement_service.like(db, user.id, m.id)
    await db.execute(update(Motivation).where(Motivation.id == m.id).values(like_count=0))
    await db.commit()
    assert await engagement_service.unlike(db, user.id, m.id) is True
    assert await like_count(db, m.id) == 0


async def test_unlike_unknown_motivation_is_a_noop(db: AsyncSession, user):
    assert await engagement_service.unlike(db, user.id, 9999) is False
    assert await engagement_service.unfavorite(db, user.id, 9999) is False


async def test_private_motivation_cannot_be_liked_by_others(db: AsyncSession, user, other_user):
    private = await make_motivation(db, other_user, is_public=False)

    with pytest.raises(ForbiddenError):
        await engagement_service.like(db, user.id, private.id)
    with pytest.raises(ForbiddenError):
        await engagement_service.favorite(db, user.id, private.id)
    with pytest.raises(NotFoundError):
        await engagement_service.like(db, user.id, 9999)

    # the owner still can
    assert await engagement_service.like(db, other_user.id, private.id) == 1


async def test_favorite_once(db: AsyncSession, user, other_user):
    uid = user.id
    m = await make_motivation(db, other_user)

    await engagement_service.favorite(db, uid, m.id)
    with pytest.raises(ConflictError):
        await engagement_service.favorite(db, uid, m.id)

    assert await engagement_service.unfavorite(db, uid, m.id) is True
    assert await engagement_service.unfavorite(db, uid, m.id) is False
    await engagement_service.favorite(db, uid, m.id)


async def test_favorites_list_is_newest_favorite_first(db: AsyncSession, user, other_user):
    first = await make_motivation(db, other_user, title="First")
    second = await make_motivation(db, other_user, title="Second")
    await make_motivation(db, other_user, title="Ignored")

    await engagement_service.favorite(db, user.id, second.id)
    await engagement_service.favorite(db, user.id, first.id)

    favorites = await engagement_service.list_favorites(db, user.id)
    assert [m.id for m in favorites] == [first.id, second.id]
    assert all(m.is_favorited and m.is_liked for m in favorites)
    assert favorites[0].author.id == other_user.id

    assert await engagement_service.list_favorites(db, other_user.id) == []

    paged = await engagement_service.list_favorites(db, user.id, page=2, limit=1)
    assert [m.id for m in paged] == [second.id]


async def test_audit_like_counts(db: AsyncSession, user, other_user):
    a = await make_motivation(db, other_user, title="A")
    b = await make_motivation(db, other_user, title="B")
    await engagement_service.like(db, user.id, a.id)
    await engagement_service.like(db, other_user.id, a.id)

    assert await engagement_service.audit_like_counts(db) == []

    await db.execute(update(Motivation).where(Motivation.id == a.id).values(like_count=7))
    await db.execute(update(Motivation).where(Motivation.id == b.id).values(like_count=3))
    await db.commit()

    drift = await engagement_service.audit_like_counts(db, repair=True)
    assert [(d.motivation_id, d.stored, d.actual) for d in drift] == [(a.id, 7, 2), (b.id, 3, 0)]

    assert await like_count(db, a.id) == 2
    assert await like_count(db, b.id) == 0
    assert await engagement_service.audit_like_counts(db) == []
