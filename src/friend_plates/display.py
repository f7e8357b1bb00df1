from __future__ import annotations

import hashlib
import random

from .config import PolicyConfig
from .models import ROLE_COLORS, DisplayKind, DisplayTransform, Entity
from .name_utils import normalize_name
from .tables import JobTable


def stable_seed(token: str) -> int:
    digest = hashlib.sha256(token.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")


def scramble_name(name: str) -> str:
    """Shuffle the interior letters of each word, keeping first and last in place.

    The shuffle is seeded from the word itself, so a name always scrambles
    the same way. Words of three characters or fewer are left alone.
    """
    parts = (name or "").split()
    for index, token in enumerate(parts):
        if len(token) <= 3:
            continue
        middle = list(token[1:-1])
        rng = random.Random(stable_seed(token))
        for i in range(len(middle) - 1, 0, -1):
            j = rng.randrange(i + 1)
            middle[i], middle[j] = middle[j], middle[i]
        parts[index] = token[0] + "".join(middle) + token[-1]
    return " ".join(parts)


def real_name_transform(
    entity: Entity,
    real_name: str,
    competitive: bool,
    policy: PolicyConfig,
    jobs: JobTable,
) -> DisplayTransform:
    if not policy.show_role_tag:
        return DisplayTransform(kind=DisplayKind.REAL, name=real_name)
    abbreviation = jobs.abbreviation(entity.job_id)
    if not abbreviation:
        return DisplayTransform(kind=DisplayKind.REAL, name=real_name)
    # Inside competitive zones the host applies its faction color to the whole line.
    color = None if competitive else ROLE_COLORS[jobs.role(entity.job_id)]
    return DisplayTransform(kind=DisplayKind.REAL, name=real_name, job_tag=abbreviation, tag_color=color)


def decide_display(
    entity: Entity,
    competitive: bool,
    recognized: bool,
    policy: PolicyConfig,
    jobs: JobTable,
) -> DisplayTransform:
    real_name = normalize_name(entity.name)
    if not real_name:
        return DisplayTransform(kind=DisplayKind.DEFAULT)

    def show_real() -> DisplayTransform:
        return real_name_transform(entity, real_name, competitive, policy, jobs)

    def scrambled() -> DisplayTransform:
        return DisplayTransform(kind=DisplayKind.SCRAMBLED, name=scramble_name(real_name))

    friend_shown = recognized and policy.show_friends_real

    if competitive:
        if policy.scramble_all_in_competitive:
            return show_real() if friend_shown else scrambled()
        if policy.real_names_only_in_competitive:
            return show_real()
        if friend_shown:
            return show_real()
        return DisplayTransform(kind=DisplayKind.DEFAULT)

    if policy.test_scramble_outside_competitive and recognized:
        return show_real() if policy.show_friends_real else scrambled()
    return DisplayTransform(kind=DisplayKind.DEFAULT)
