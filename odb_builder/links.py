# odb_builder/links.py
from __future__ import annotations

from typing import List

import structlog

from .components import CORE_LIBRARY
from .discovery import DiscoveryResult
from .models import LinkSet, ResolvedOptions

logger = structlog.get_logger()


def requested_libraries(options: ResolvedOptions) -> List[str]:
    """Core runtime, then one library per real backend, then one per profile; no duplicates."""
    libs: List[str] = [CORE_LIBRARY]
    for backend in options.real_backends:
        comp = backend.component
        if comp is not None:
            libs.append(comp.link_id)
    for profile in options.profile_roots:
        libs.append(profile.component.link_id)
    return list(dict.fromkeys(libs))


def resolve_links(options: ResolvedOptions, discovery: DiscoveryResult) -> LinkSet:
    """
    Libraries the consuming targets link against, limited to what discovery found.
    Unavailable libraries are dropped quietly; discovery reports missing required components.
    """
    requested = requested_libraries(options)
    available = discovery.available_libraries()
    libraries = tuple(lib for lib in requested if lib in available)

    dropped = [lib for lib in requested if lib not in available]
    if dropped:
        logger.debug("odb_link_dropped", libraries=dropped)

    return LinkSet(requested=tuple(requested), libraries=libraries)


__all__ = ["requested_libraries", "resolve_links"]
