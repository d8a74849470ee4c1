from fastapi import Header, HTTPException

from glrules.ai import SuggestionClient


async def get_owner_id(x_owner_id: str = Header(...)) -> str:
    """Owner of the request, as set by the authenticating proxy."""
    owner_id = x_owner_id.strip()
    if not owner_id:
        raise HTTPException(status_code=422, detail="X-Owner-Id header must not be blank")
    return owner_id


def get_suggestion_client() -> SuggestionClient:
    return SuggestionClient()
