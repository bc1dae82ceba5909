"""
Profile endpoints - public profiles and the follow relation.
"""

from fastapi import APIRouter

from marketplace.core.dependencies import CurrentIdentity, Guard, OptionalIdentity
from marketplace.db.session import DbSession
from marketplace.schemas.user import ProfileEnvelope
from marketplace.services.relationship_service import RelationshipService
from marketplace.services.user_service import UserService
from marketplace.services.views import ViewBuilder

router = APIRouter()


@router.get("/{username}", response_model=ProfileEnvelope)
async def get_profile(session: DbSession, username: str, viewer: OptionalIdentity):
    user = await UserService(session).get_by_username(username)
    return ProfileEnvelope(profile=await ViewBuilder(session, viewer).profile(user))


@router.post("/{username}/follow", response_model=ProfileEnvelope)
async def follow(session: DbSession, username: str, identity: CurrentIdentity, guard: Guard):
    target = await UserService(session).get_by_username(username)
    await RelationshipService(session, guard=guard).follow(identity.user_id, target.id, identity)
    return ProfileEnvelope(profile=await ViewBuilder(session, identity).profile(target))


@router.delete("/{username}/follow", response_model=ProfileEnvelope)
async def unfollow(session: DbSession, username: str, identity: CurrentIdentity, guard: Guard):
    target = await UserService(session).get_by_username(username)
    await RelationshipService(session, guard=guard).unfollow(identity.user_id, target.id, identity)
    return ProfileEnvelope(profile=await ViewBuilder(session, identity).profile(target))
