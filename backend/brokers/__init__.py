"""Data broker catalog."""

from brokers.base import BrokerInfo
from brokers.directory import (
    DATA_BROKER_DIRECTORY,
    DATA_PROCESSOR_DOMAINS,
    DATA_PROCESSOR_SOURCES,
    get_broker,
    list_brokers,
)
from brokers.source_groups import (
    SOURCE_GROUPS,
    SourceGroup,
    get_primary_source,
    get_related_sources,
    get_removal_coverage,
    get_source_group,
    group_sources_for_display,
    removal_covers_source,
)
from brokers.url_corrections import URL_CORRECTIONS, PATH_VARIATIONS, get_opt_out_url

__all__ = [
    "BrokerInfo",
    "DATA_BROKER_DIRECTORY",
    "DATA_PROCESSOR_DOMAINS",
    "DATA_PROCESSOR_SOURCES",
    "get_broker",
    "list_brokers",
    "SOURCE_GROUPS",
    "SourceGroup",
    "get_primary_source",
    "get_related_sources",
    "get_removal_coverage",
    "get_source_group",
    "group_sources_for_display",
    "removal_covers_source",
    "URL_CORRECTIONS",
    "PATH_VARIATIONS",
    "get_opt_out_url",
]
