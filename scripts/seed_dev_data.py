#!/usr/bin/env python3
"""Seed a development database with branches and directory members.

Usage:
    python scripts/seed_dev_data.py

Uses MAP_DATABASE_URL (or the server default). Run ``alembic upgrade head``
first. Branch member counts are recomputed once the members are in.
"""

import asyncio
import uuid

from sqlalchemy import text

from app.core.database import engine, get_session_context, set_row_context
from app.services.branches import recount_members

# Deterministic UUIDs for reproducibility
BRANCH_IDS = [uuid.UUID(f"00000000-0000-0000-0000-0000000001{i:02d}") for i in range(4)]
MEMBER_IDS = [uuid.UUID(f"00000000-0000-0000-0000-0000000002{i:02d}") for i in range(8)]

BRANCHES = [
    # name, region, city, lat, lng, public
    ("Sapporo Central", "Hokkaido", "Sapporo", 43.0618, 141.3545, True),
    ("Asahikawa", "Hokkaido", "Asahikawa", 43.7706, 142.3650, True),
    ("Hakodate", "Hokkaido", "Hakodate", 41.7687, 140.7288, True),
    ("Obihiro (pending)", "Hokkaido", "Obihiro", 42.9239, 143.1960, False),
]

MEMBERS = [
    # display_name, company, industry_1, branch index, visible, general_public, public_level, payment
    ("Aiko Tanaka", "Tanaka Farms", "Agriculture", 0, True, True, 1, "active"),
    ("Kenji Sato", "Sato Logistics", "Logistics", 0, True, False, 2, "active"),
    ("Yui Nakamura", "North Code", "Software", 0, True, False, 3, "inactive"),
    ("Haruto Kobayashi", "Kobayashi Print", "Printing", 1, True, True, 1, "active"),
    ("Mei Watanabe", "Watanabe Dental", "Healthcare", 1, False, False, 2, "inactive"),
    ("Sota Ito", "Ito Construction", "Construction", 2, True, False, 2, "active"),
    ("Rin Yamamoto", "Harbour Foods", "Food", 2, True, True, 2, "inactive"),
    ("Daiki Suzuki", "Suzuki Tax Office", "Accounting", 2, False, True, 1, "active"),
]


async def seed():
    async with get_session_context() as session:
        # Seeding writes admin-only columns
        await set_row_context(session, is_admin=True)

        for bid, (name, region, city, lat, lng, public) in zip(BRANCH_IDS, BRANCHES):
            await session.execute(text("""
                INSERT INTO branches (id, name, region, city, latitude, longitude, public)
                VALUES (:id, :name, :region, :city, :lat, :lng, :public)
                ON CONFLICT (id) DO NOTHING
            """), {"id": bid, "name": name, "region": region, "city": city,
                   "lat": lat, "lng": lng, "public": public})

        for i, (mid, row) in enumerate(zip(MEMBER_IDS, MEMBERS)):
            name, company, industry, branch, visible, general_public, level, payment = row
            lat, lng = BRANCHES[branch][3], BRANCHES[branch][4]
            await session.execute(text("""
                INSERT INTO members (
                    id, branch_id, display_name, company_name, industry_1,
                    want_to_introduce, can_introduce, latitude, longitude,
                    visible, general_public, public_level, payment_status,
                    last_updated_by, claim_email
                )
                VALUES (
                    :id, :bid, :name, :company, :industry,
                    :want, :can, :lat, :lng,
                    :visible, :general_public, :level, :payment,
                    'admin', :claim_email
                )
                ON CONFLICT (id) DO NOTHING
            """), {
                "id": mid,
                "bid": BRANCH_IDS[branch],
                "name": name,
                "company": company,
                "industry": industry,
                "want": f"Looking for partners in {industry.lower()}",
                "can": f"Introductions within {BRANCHES[branch][0]}",
                # Spread pins around the branch
                "lat": lat + 0.01 * (i % 3),
                "lng": lng - 0.01 * (i % 2),
                "visible": visible,
                "general_public": general_public,
                "level": level,
                "payment": payment,
                "claim_email": f"member{i}@example.com",
            })

        changed = await recount_members(session)

    await engine.dispose()
    print(f"Seeded {len(BRANCHES)} branches and {len(MEMBERS)} members ({changed} branch counts updated).")


if __name__ == "__main__":
    asyncio.run(seed())
