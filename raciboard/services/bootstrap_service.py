"""Bootstrap utilities for ensuring the impacted-profile catalog exists."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from raciboard.domain.profile import DEFAULT_PROFILE_CATALOG
from raciboard.models.profile import ProfileModel

logger = logging.getLogger(__name__)


async def ensure_profiles(
    db: AsyncSession,
    *,
    catalog: Iterable[Tuple[str, str, Optional[str]]] = DEFAULT_PROFILE_CATALOG,
) -> Dict[str, ProfileModel]:
    """Ensure that every catalog profile exists and return them keyed by code."""
    result = await db.execute(select(ProfileModel))
    profile_map: Dict[str, ProfileModel] = {row.code: row for row in result.scalars().all()}
    created = []

    for code, name, description in catalog:
        if code in profile_map:
            continue
        profile_obj = ProfileModel(code=code, name=name, description=description)
        db.add(profile_obj)
        profile_map[code] = profile_obj
        created.append(code)

    if created:
        await db.commit()
        logger.info("Created impacted profiles: %s", ", ".join(created))

    return profile_map
