"""
Distribution topology synthesis.

Two routing models are produced from the same building blocks:

* server-rendered frameworks send unmatched paths to the server function
  and promote every top-level entry of the public directory to a static
  behavior backed by the ``StaticFilesSSR`` group, which still fails over
  to the server if the object is missing;
* static-only frameworks serve everything from the bucket through the
  ``StaticFilesSPA`` group, whose secondary origin returns index.html so
  the client router receives the requested path.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .assets import PublicEntry
from .cloudfront import (
    DEFAULT_ROOT_OBJECT,
    HOST_FORWARD_FUNCTION,
    SERVER_FUNCTION_ORIGIN,
    STATIC_FILES,
    STATIC_FILES_FALLBACK,
    STATIC_FILES_SPA,
    STATIC_FILES_SSR,
    CacheBehavior,
    DistributionTopology,
    FunctionAssociation,
    OriginGroup,
    StandardCacheBehaviors,
    StandardOrigins,
    ViewerCertificate,
    get_att,
)
from .config import FrontendConfig
from .frameworks import FrameworkProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AliasCheck:
    """Outcome of validating the alias/certificate pair."""

    aliases: tuple[str, ...] = ()
    certificate: ViewerCertificate | None = None
    warning: str | None = None

    @property
    def applied(self) -> bool:
        return self.certificate is not None


def check_alias_certificate(
    aliases: Sequence[str], certificate: str | None, ssl_version: str = "TLSv1.2_2021"
) -> AliasCheck:
    """
    Aliases and a certificate are only applied together.

    Supplying just one of them drops both; the returned check carries a
    warning describing what was ignored.
    """
    if aliases and certificate:
        return AliasCheck(
            aliases=tuple(aliases),
            certificate=ViewerCertificate(certificate, minimum_protocol_version=ssl_version),
        )
    if aliases:
        return AliasCheck(warning=f"Ignoring aliases {list(aliases)}: no certificate configured")
    if certificate:
        return AliasCheck(warning=f"Ignoring certificate {certificate}: no aliases configured")
    return AliasCheck()


def static_path_pattern(entry: PublicEntry) -> str:
    return f"{entry.name}/*" if entry.is_dir else entry.name


class TopologyBuilder:
    def __init__(self, profile: FrameworkProfile, config: FrontendConfig | None = None):
        self.profile = profile
        self.config = config or FrontendConfig()

    @property
    def forwards_host(self) -> bool:
        return self.profile.has_server_compute and self.config.ssr_forward_host

    def build(self, public_entries: Sequence[PublicEntry] = ()) -> DistributionTopology:
        if self.profile.has_server_compute:
            topology = self._server_topology(public_entries)
        else:
            topology = self._static_topology()
        topology.validate()
        return topology

    def _base(self) -> dict:
        cloudfront = self.config.cloudfront
        check = check_alias_certificate(
            self.config.aliases, self.config.certificate, cloudfront.ssl_version
        )
        if check.warning:
            logger.warning(check.warning)
        return {
            "enabled": cloudfront.enabled,
            "http_version": cloudfront.http,
            "price_class": cloudfront.price_class,
            "ipv6_enabled": cloudfront.ipv6,
            "comment": cloudfront.description,
            "aliases": check.aliases,
            "viewer_certificate": check.certificate,
            "warnings": (check.warning,) if check.warning else (),
        }

    def _server_topology(self, public_entries: Sequence[PublicEntry]) -> DistributionTopology:
        group = OriginGroup(STATIC_FILES_SSR, STATIC_FILES, SERVER_FUNCTION_ORIGIN)

        behaviors: list[CacheBehavior] = []
        seen: set[str] = set()
        for entry in public_entries:
            pattern = static_path_pattern(entry)
            if pattern in seen:
                continue
            seen.add(pattern)
            behaviors.append(StandardCacheBehaviors.STATIC_FILES.at(pattern))

        default = StandardCacheBehaviors.SERVER_FUNCTION
        if self.forwards_host:
            association = FunctionAssociation(get_att(HOST_FORWARD_FUNCTION, "FunctionARN"))
            forwarded = {SERVER_FUNCTION_ORIGIN, STATIC_FILES_SSR}
            default = default.with_function(association)
            behaviors = [
                b.with_function(association) if b.target_origin_id in forwarded else b
                for b in behaviors
            ]

        return DistributionTopology(
            origins=(StandardOrigins.STATIC_FILES, StandardOrigins.SERVER_FUNCTION),
            origin_groups=(group,),
            default_cache_behavior=default,
            cache_behaviors=tuple(behaviors),
            **self._base(),
        )

    def _static_topology(self) -> DistributionTopology:
        return DistributionTopology(
            origins=(StandardOrigins.STATIC_FILES, StandardOrigins.STATIC_FILES_FALLBACK),
            origin_groups=(OriginGroup(STATIC_FILES_SPA, STATIC_FILES, STATIC_FILES_FALLBACK),),
            default_cache_behavior=StandardCacheBehaviors.STATIC_FILES_WITH_FALLBACK,
            default_root_object=DEFAULT_ROOT_OBJECT,
            **self._base(),
        )
