"""
babysim/peers.py
~~~~~~~~~~~~~~~~
Non-family children in the simulated child's life. Peers are generated
around the child's own traits and interests, tracked as ``type="peer"``
relationships keyed by peer id, drift year over year with compatibility,
and nudge the child's traits when the friendship is strong.

``compatibility`` is shared with the sibling engine.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from babysim.character import ChildCharacter, RelationshipMetric
from babysim.utils import clamp

if TYPE_CHECKING:
    from babysim.config_models import DevelopmentConfig
    from babysim.rng import RandomSource

logger = logging.getLogger(__name__)

PEER_RELATIONSHIP_TYPE = "peer"
PEER_RELATIONSHIP_MIN_AGE = 2
PEER_QUALITY_FLOOR = 10.0

# Traits a peer is modelled with; a subset of the child's base traits.
PEER_TRAITS = ("curiosity", "empathy", "confidence", "cooperation", "creativity")

_EARLY_INTERESTS = ["toys", "cartoons", "playground", "coloring", "stories"]
_MIDDLE_INTERESTS = ["games", "sports", "music", "art", "reading", "nature", "building"]
_LATE_INTERESTS = ["technology", "fashion", "movies", "clubs", "hobbies", "volunteering"]


class SocialStatus(str, Enum):
    POPULAR = "popular"
    AVERAGE = "average"
    SHY = "shy"
    INFLUENTIAL = "influential"
    TROUBLEMAKER = "troublemaker"


class FamilyBackground(str, Enum):
    SUPPORTIVE = "supportive"
    STRICT = "strict"
    PERMISSIVE = "permissive"
    CHAOTIC = "chaotic"
    ACADEMIC = "academic"


class PeerCharacter(BaseModel):
    id: str
    name: str
    age: int = Field(ge=0)
    gender: str
    personality_traits: dict[str, float] = Field(default_factory=dict)
    interests: list[str] = Field(default_factory=list)
    social_status: SocialStatus = SocialStatus.AVERAGE
    family_background: FamilyBackground = FamilyBackground.SUPPORTIVE
    social_influence: float = Field(default=50.0, ge=0.0, le=100.0)
    emotional_regulation: float = Field(default=50.0, ge=0.0, le=100.0)
    academic_focus: float = Field(default=50.0, ge=0.0, le=100.0)
    risk_taking: float = Field(default=50.0, ge=0.0, le=100.0)


# ---------------------------------------------------------------------------
#  Compatibility
# ---------------------------------------------------------------------------

def trait_map(character: ChildCharacter) -> dict[str, float]:
    return {trait.id: trait.value for trait in character.personality_traits}


def compatibility(
    traits_a: Mapping[str, float],
    interests_a: Sequence[str],
    age_a: int,
    traits_b: Mapping[str, float],
    interests_b: Sequence[str],
    age_b: int,
) -> float:
    """
    0.5 baseline, +0.1 x similarity for every shared trait, +0.15 per shared
    interest, -0.1 per year of age difference; clamped to [0, 1].
    """
    score = 0.5
    for trait_id, value in traits_a.items():
        other = traits_b.get(trait_id)
        if other is not None:
            score += (1 - abs(value - other) / 100) * 0.1
    shared = sum(1 for interest in interests_a if interest in interests_b)
    score += shared * 0.15
    score -= abs(age_a - age_b) * 0.1
    return clamp(score, 0.0, 1.0)


def peer_compatibility(child: ChildCharacter, peer: PeerCharacter) -> float:
    return compatibility(
        trait_map(child), child.interests, child.age,
        peer.personality_traits, peer.interests, peer.age,
    )


def drift_amount(compatibility_score: float, age_gap: int) -> float:
    """Year-over-year relationship drift shared by peers and siblings."""
    change = 0.0
    if compatibility_score < 0.3:
        change -= 5
    if age_gap > 2:
        change -= 3
    if compatibility_score > 0.7:
        change += 2
    return change


# ---------------------------------------------------------------------------
#  Generation
# ---------------------------------------------------------------------------

def peer_count(age: int) -> int:
    if age <= 3:
        return 1
    if age <= 6:
        return 2
    if age <= 10:
        return 3
    return 4


def _interest_pool(age: int) -> list[str]:
    if age <= 5:
        return list(_EARLY_INTERESTS)
    if age <= 10:
        return _EARLY_INTERESTS + _MIDDLE_INTERESTS
    return _MIDDLE_INTERESTS + _LATE_INTERESTS


def _determine_social_status(traits: Mapping[str, float]) -> SocialStatus:
    confidence = traits.get("confidence", 50)
    empathy = traits.get("empathy", 50)
    cooperation = traits.get("cooperation", 50)
    if confidence > 75 and empathy > 60:
        return SocialStatus.POPULAR
    if confidence > 70 and cooperation < 40:
        return SocialStatus.TROUBLEMAKER
    if confidence > 75:
        return SocialStatus.INFLUENTIAL
    if confidence < 40:
        return SocialStatus.SHY
    return SocialStatus.AVERAGE


_STATUS_INFLUENCE = {
    SocialStatus.POPULAR: 20,
    SocialStatus.INFLUENTIAL: 15,
    SocialStatus.TROUBLEMAKER: 10,
    SocialStatus.SHY: -15,
}

_STATUS_RISK = {
    SocialStatus.TROUBLEMAKER: 25,
    SocialStatus.INFLUENTIAL: 10,
    SocialStatus.SHY: -20,
}


def _emotional_regulation(traits: Mapping[str, float], age: int) -> float:
    regulation = (traits.get("empathy", 50) + traits.get("confidence", 50)) / 2
    if age < 5:
        regulation -= 20
    elif age < 8:
        regulation -= 10
    elif age < 12:
        regulation -= 5
    return clamp(regulation, 10, 90)


def create_peer(
    child: ChildCharacter,
    index: int,
    tables: DevelopmentConfig,
    rng: RandomSource,
) -> PeerCharacter:
    genders = list(tables.peerNames.keys())
    gender = rng.choice(genders)
    name = rng.choice(tables.peerNames[gender])

    traits: dict[str, float] = {}
    for trait_id in PEER_TRAITS:
        value = 40 + rng.random() * 20
        child_value = child.trait_value(trait_id)
        # Friends tend to resemble each other.
        if child_value is not None and rng.chance(0.4):
            value = clamp(child_value + rng.uniform(-15, 15), 20, 80)
        if trait_id == "confidence" and child.age < 6:
            value -= 10
        if trait_id == "empathy" and child.age < 4:
            value -= 15
        traits[trait_id] = round(clamp(value, 10, 90))

    pool = _interest_pool(child.age)
    interests: list[str] = []
    if child.interests and rng.chance(0.3):
        shared = rng.choice(child.interests)
        if shared in pool:
            interests.append(shared)
    wanted = 2 + int(rng.random() * 3)
    while len(interests) < wanted:
        candidates = [interest for interest in pool if interest not in interests]
        if not candidates:
            break
        interests.append(rng.choice(candidates))

    status = _determine_social_status(traits)
    influence = (traits["confidence"] + traits["cooperation"]) / 2 + _STATUS_INFLUENCE.get(status, 0)
    risk = traits["confidence"] - traits["cooperation"] / 2 + _STATUS_RISK.get(status, 0)
    academic = (traits["curiosity"] + traits["creativity"]) / 2 + rng.uniform(-15, 15)

    return PeerCharacter(
        id=f"peer_{child.id}_{index + 1}",
        name=name,
        age=max(0, child.age + int(rng.random() * 3) - 1),
        gender=gender,
        personality_traits=traits,
        interests=interests,
        social_status=status,
        family_background=rng.choice(list(FamilyBackground)),
        social_influence=clamp(influence, 10, 90),
        emotional_regulation=_emotional_regulation(traits, child.age),
        academic_focus=clamp(academic, 20, 80),
        risk_taking=clamp(risk, 10, 90),
    )


def generate_peers(child: ChildCharacter, tables: DevelopmentConfig, rng: RandomSource) -> list[PeerCharacter]:
    peers = [create_peer(child, index, tables, rng) for index in range(peer_count(child.age))]
    _balance_peer_group(peers)
    return peers


def _balance_peer_group(peers: list[PeerCharacter]) -> None:
    """Pull the last peer away from a group that is uniformly bold or uniformly shy."""
    if len(peers) <= 1:
        return
    average = sum(peer.personality_traits.get("confidence", 50) for peer in peers) / len(peers)
    if abs(average - 50) > 25:
        outlier = peers[-1]
        outlier.personality_traits["confidence"] = 30 if average > 50 else 70
        outlier.social_status = _determine_social_status(outlier.personality_traits)


# ---------------------------------------------------------------------------
#  Relationships
# ---------------------------------------------------------------------------

def initialize_peer_relationships(
    child: ChildCharacter,
    peers: Sequence[PeerCharacter],
    rng: RandomSource,
) -> int:
    """Create a peer relationship per peer. Returns how many were created."""
    if child.age < PEER_RELATIONSHIP_MIN_AGE:
        return 0
    created = 0
    for peer in peers:
        quality = 30 + peer_compatibility(child, peer) * 40
        child.relationships[peer.id] = RelationshipMetric(
            type=PEER_RELATIONSHIP_TYPE,
            quality=round(clamp(quality)),
            trust=round(clamp(quality - 5 + rng.random() * 10)),
            communication=round(clamp(quality - 5 + rng.random() * 10)),
            last_updated=child.age,
        )
        created += 1
    logger.debug("Created %d peer relationships for %s.", created, child.id)
    return created


def evolve_peer_relationships(child: ChildCharacter, peers: Sequence[PeerCharacter], age: int) -> None:
    by_id = {peer.id: peer for peer in peers}
    for key, relationship in child.relationships.items():
        if relationship.type != PEER_RELATIONSHIP_TYPE:
            continue
        peer = by_id.get(key)
        if peer is None:
            continue
        change = drift_amount(peer_compatibility(child, peer), abs(child.age - peer.age))
        relationship.quality = clamp(relationship.quality + change, PEER_QUALITY_FLOOR, 100.0)
        relationship.last_updated = age


def best_peer(child: ChildCharacter, peers: Sequence[PeerCharacter]) -> tuple[PeerCharacter, RelationshipMetric] | None:
    """The supplied peer the child gets along with best, if any relationship exists."""
    best: tuple[PeerCharacter, RelationshipMetric] | None = None
    for peer in peers:
        relationship = child.relationships.get(peer.id)
        if relationship is None or relationship.type != PEER_RELATIONSHIP_TYPE:
            continue
        if best is None or relationship.quality > best[1].quality:
            best = (peer, relationship)
    return best


def age_influence_modifier(age: int) -> float:
    if 10 <= age <= 14:
        return 1.3
    if 6 <= age <= 9:
        return 1.1
    if 15 <= age <= 18:
        return 1.2
    return 0.8


def apply_peer_influence(child: ChildCharacter, peers: Sequence[PeerCharacter], years: int = 1) -> None:
    """Close friends pull the child's traits toward their own."""
    for peer in peers:
        relationship = child.relationships.get(peer.id)
        if relationship is None or relationship.quality <= 50:
            continue

        influence = (
            relationship.quality / 100 * 0.2
            + peer.social_influence / 100 * 0.15
            + relationship.trust / 100 * 0.1
        ) * age_influence_modifier(child.age)

        for trait_id, peer_value in peer.personality_traits.items():
            trait = child.get_trait(trait_id)
            if trait is not None:
                trait.value = clamp(trait.value + (peer_value - trait.value) * influence * years * 0.1)

        if peer.risk_taking > 70:
            resilience = child.get_trait("resilience")
            if resilience is not None and resilience.value < 60:
                resilience.value = clamp(resilience.value - influence * 10)
        if peer.emotional_regulation > 70:
            empathy = child.get_trait("empathy")
            if empathy is not None:
                empathy.value = clamp(empathy.value + influence * 5)

        curiosity = child.get_trait("curiosity")
        if curiosity is not None:
            if peer.academic_focus > 70:
                curiosity.value = clamp(curiosity.value + influence * 8)
            elif peer.academic_focus < 30 and curiosity.value > 40:
                curiosity.value = clamp(curiosity.value - influence * 5, 20, 100)
