"""
Script to create the first administrator with a password for local use.

Creates (or reuses) the user and links an admin member row to it. An
existing member row is promoted to admin rather than duplicated.
"""

import asyncio
import argparse

import uuid
from sqlmodel import select

from app.core.auth import hash_password
from app.core.config import get_settings
from app.core.database import get_session_context, set_row_context
from app.core.logging import configure_logging
from app.models.member import Member
from app.models.user import User
from membermap_shared.schemas.common import PaymentStatus, Role, UpdatedBy

settings = get_settings()


async def create_admin(
    email: str,
    password: str,
    display_name: str,
    latitude: float,
    longitude: float,
) -> None:
    email = email.lower()
    async with get_session_context() as session:
        await set_row_context(session, is_admin=True)

        # 1. Ensure the user exists
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user:
            user = User(
                id=uuid.uuid4(),
                email=email,
                password_hash=hash_password(password),
            )
            session.add(user)
            print(f"Created user: {email}")
        else:
            print(f"User {email} already exists.")

        await session.flush()  # Get IDs

        # 2. Ensure an admin member row is linked
        result = await session.execute(select(Member).where(Member.user_id == user.id))
        member = result.scalar_one_or_none()

        if not member:
            member = Member(
                user_id=user.id,
                role=Role.ADMIN.value,
                display_name=display_name,
                latitude=latitude,
                longitude=longitude,
                payment_status=PaymentStatus.ACTIVE.value,
                last_updated_by=UpdatedBy.ADMIN.value,
            )
            session.add(member)
            print(f"Linked an admin profile to {email}.")
        elif member.role != Role.ADMIN.value:
            member.role = Role.ADMIN.value
            member.last_updated_by = UpdatedBy.ADMIN.value
            session.add(member)
            print(f"Promoted {email} to administrator.")

    print("Done.")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Create a local admin user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--name", default="Administrator", help="Display name of the admin profile")
    parser.add_argument("--latitude", type=float, default=settings.map_center_lat)
    parser.add_argument("--longitude", type=float, default=settings.map_center_lng)

    args = parser.parse_args(argv)
    if len(args.password) < settings.min_password_length:
        parser.error(f"password must be at least {settings.min_password_length} characters")

    configure_logging(settings.log_level, "text")
    asyncio.run(
        create_admin(args.email, args.password, args.name, args.latitude, args.longitude)
    )


if __name__ == "__main__":
    main()
