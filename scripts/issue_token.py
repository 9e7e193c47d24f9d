import asyncio
import sys
import os

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mikromatter.db.session import async_session_maker
from mikromatter.schemas.user import OAuthProfile
from mikromatter.services.user_service import create_tokens_for_user, upsert_user


async def issue_token(user_id, email=None, first_name=None):
    """Create or refresh a user the way an OAuth login would, then print a token pair."""
    profile = OAuthProfile(id=user_id, email=email, first_name=first_name)
    async with async_session_maker() as session:
        user = await upsert_user(session, profile)
        await session.commit()
        access_token, refresh_token = create_tokens_for_user(user)
    print(f"User: {user.id}")
    print(f"Access token: {access_token}")
    print(f"Refresh token: {refresh_token}")

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/issue_token.py <provider:id> [email] [first_name]")
        sys.exit(1)

    user_id = sys.argv[1]
    email = sys.argv[2] if len(sys.argv) > 2 else None
    first_name = sys.argv[3] if len(sys.argv) > 3 else None
    asyncio.run(issue_token(user_id, email, first_name))
