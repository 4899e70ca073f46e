"""Groups of brokers that share ownership or a data pipeline.

A removal at a group's primary source may also clear the related sources
when ``single_removal_covers`` is set.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SourceGroup:
    id: str
    name: str
    primary_source: str
    related_sources: tuple[str, ...] = field(default_factory=tuple)
    removal_note: str = ""
    single_removal_covers: bool = False

    @property
    def members(self) -> tuple[str, ...]:
        return (self.primary_source, *self.related_sources)


SOURCE_GROUPS = [
    # Data broker conglomerates
    SourceGroup(
        id="pdl-network",
        name="People Data Labs Network",
        primary_source="BEENVERIFIED",
        related_sources=("INSTANTCHECKMATE", "PEOPLELOOKER"),
        removal_note="Removing from BeenVerified typically removes from Instant Checkmate and PeopleLooker within 7-14 days",
        single_removal_covers=True,
    ),
    SourceGroup(
        id="whitepages-network",
        name="Whitepages Network",
        primary_source="WHITEPAGES",
        related_sources=("ADDRESSES_COM", "NEIGHBORWHO"),
        removal_note="Whitepages opt-out covers their network of sites",
        single_removal_covers=True,
    ),
    SourceGroup(
        id="intelius-network",
        name="Intelius/PeopleConnect Network",
        primary_source="INTELIUS",
        related_sources=("USSEARCH", "CLASSMATES", "ZABASEARCH"),
        removal_note="Intelius opt-out covers USSearch and related PeopleConnect properties",
        single_removal_covers=True,
    ),
    SourceGroup(
        id="truthfinder-network",
        name="TruthFinder Network",
        primary_source="TRUTHFINDER",
        related_sources=("PUBLICRECORDSNOW",),
        removal_note="TruthFinder shares data with related sites",
        single_removal_covers=False,
    ),
    # AI training consolidation
    SourceGroup(
        id="spawning-do-not-train",
        name="Spawning.ai Do Not Train Registry",
        primary_source="SPAWNING_AI",
        related_sources=("STABILITY_AI", "LAION_AI", "HUGGINGFACE"),
        removal_note="The Do Not Train registry is honored by Stability AI, LAION and participating AI companies",
        single_removal_covers=True,
    ),
    SourceGroup(
        id="openai-ecosystem",
        name="OpenAI Ecosystem",
        primary_source="OPENAI",
        related_sources=("DALL_E",),
        removal_note="OpenAI privacy request covers ChatGPT, DALL-E and associated services",
        single_removal_covers=True,
    ),
    SourceGroup(
        id="meta-ai-ecosystem",
        name="Meta AI Ecosystem",
        primary_source="META_AI",
        related_sources=("FACEBOOK", "INSTAGRAM"),
        removal_note="Meta AI opt-out applies to Facebook, Instagram and WhatsApp data usage",
        single_removal_covers=True,
    ),
    # Voice and avatar platforms: each needs its own request
    SourceGroup(
        id="ai-voice-labs",
        name="AI Voice Generation Services",
        primary_source="ELEVENLABS",
        related_sources=("RESEMBLE_AI", "PLAY_HT"),
        removal_note="Each voice service requires separate opt-out",
        single_removal_covers=False,
    ),
    SourceGroup(
        id="avatar-video-platforms",
        name="AI Avatar Video Platforms",
        primary_source="D_ID",
        related_sources=("HEYGEN", "SYNTHESIA"),
        removal_note="Each platform requires separate removal if your likeness was used",
        single_removal_covers=False,
    ),
    # B2B and marketing
    SourceGroup(
        id="zoominfo-network",
        name="B2B Data Network",
        primary_source="ZOOMINFO",
        related_sources=("APOLLO", "LUSHA", "ROCKETREACH", "CLEARBIT"),
        removal_note="B2B data brokers often share sources - remove from each for complete coverage",
        single_removal_covers=False,
    ),
    SourceGroup(
        id="marketing-data-giants",
        name="Marketing Data Giants",
        primary_source="ACXIOM",
        related_sources=("ORACLE_DATACLOUD", "EXPERIAN_MARKETING", "EPSILON"),
        removal_note="Large marketing databases - each requires separate opt-out",
        single_removal_covers=False,
    ),
]

_SOURCE_TO_GROUP: dict[str, SourceGroup] = {}
for _group in SOURCE_GROUPS:
    for _source in _group.members:
        _SOURCE_TO_GROUP[_source] = _group


def get_source_group(source: str) -> SourceGroup | None:
    """Get the group a source belongs to, if any."""
    return _SOURCE_TO_GROUP.get(source)


def get_related_sources(source: str) -> list[str]:
    """Other members of the source's group."""
    group = get_source_group(source)
    if not group:
        return []
    return [member for member in group.members if member != source]


def removal_covers_source(primary_source: str, related_source: str) -> bool:
    """True when removing from ``primary_source`` also clears ``related_source``.

    Coverage only flows from a group's primary to its related members, and
    only for groups that share a single opt-out.
    """
    group = get_source_group(primary_source)
    if not group or group.primary_source != primary_source:
        return False
    if not group.single_removal_covers:
        return False
    return related_source in group.related_sources


def get_primary_source(source: str) -> str:
    """The source to target for removal."""
    group = get_source_group(source)
    return group.primary_source if group else source


def get_removal_coverage(source: str) -> dict:
    """How many sources a removal at ``source`` reaches."""
    group = get_source_group(source)
    if not group:
        return {"direct_sources": 1, "related_sources": 0, "total": 1, "note": None, "covered": []}

    if group.primary_source == source and group.single_removal_covers:
        related = len(group.related_sources)
        return {
            "direct_sources": 1,
            "related_sources": related,
            "total": 1 + related,
            "note": group.removal_note,
            "covered": list(group.related_sources),
        }

    return {"direct_sources": 1, "related_sources": 0, "total": 1, "note": group.removal_note, "covered": []}


def group_sources_for_display(sources: list[str]) -> dict:
    """Organize sources by group, preserving first-seen order."""
    grouped = []
    ungrouped = []
    seen_groups: set[str] = set()

    for source in sources:
        group = get_source_group(source)
        if group is None:
            ungrouped.append(source)
            continue
        if group.id in seen_groups:
            continue
        seen_groups.add(group.id)
        members = [s for s in sources if get_source_group(s) is group]
        grouped.append({"group": group, "sources": members})

    return {"grouped": grouped, "ungrouped": ungrouped}
