"""Tests for CloudFront topology synthesis."""

import pytest

from sitefront.assets import PublicEntry
from sitefront.cloudfront import (
    HOST_FORWARD_FUNCTION,
    SERVER_FUNCTION_ORIGIN,
    SPA_FALLBACK_PATH,
    STATIC_FILES,
    STATIC_FILES_FALLBACK,
    STATIC_FILES_SPA,
    STATIC_FILES_SSR,
    CacheBehavior,
    DistributionTopology,
    Origin,
    OriginGroup,
    OriginKind,
    StandardCacheBehaviors,
    StandardOrigins,
)
from sitefront.config import FrontendConfig
from sitefront.errors import ConfigurationError
from sitefront.frameworks import PROFILES, Framework
from sitefront.topology import TopologyBuilder, check_alias_certificate

SSR = PROFILES[Framework.TANSTACK_START]
SPA = PROFILES[Framework.VITE]

ENTRIES = [PublicEntry("assets", True), PublicEntry("favicon.ico", False)]


def ssr_topology(config=None, entries=ENTRIES):
    return TopologyBuilder(SSR, config).build(entries)


class TestServerTopology:
    """Server-rendered frameworks."""

    def test_behaviors_follow_public_listing(self):
        topology = ssr_topology()

        assert [b.path_pattern for b in topology.cache_behaviors] == ["assets/*", "favicon.ico"]
        assert all(b.target_origin_id == STATIC_FILES_SSR for b in topology.cache_behaviors)

    def test_default_targets_server_function(self):
        topology = ssr_topology()

        assert topology.default_cache_behavior.target_origin_id == SERVER_FUNCTION_ORIGIN
        assert topology.default_cache_behavior.path_pattern is None
        assert "POST" in topology.default_cache_behavior.allowed_methods

    def test_origins_and_group(self):
        topology = ssr_topology()

        assert [o.id for o in topology.origins] == [STATIC_FILES, SERVER_FUNCTION_ORIGIN]
        assert topology.origins[1].kind is OriginKind.HTTP
        (group,) = topology.origin_groups
        assert group.id == STATIC_FILES_SSR
        assert group.members == (STATIC_FILES, SERVER_FUNCTION_ORIGIN)
        assert group.failover_status_codes == {403, 404}

    def test_static_behaviors_are_read_only(self):
        for behavior in ssr_topology().cache_behaviors:
            assert behavior.allowed_methods == ("GET", "HEAD")

    def test_patterns_drawn_from_listing(self):
        entries = [PublicEntry("_build", True), PublicEntry("robots.txt", False), PublicEntry("img", True)]
        topology = ssr_topology(entries=entries)

        names = {e.name for e in entries}
        for behavior in topology.cache_behaviors:
            assert behavior.path_pattern.removesuffix("/*") in names

    def test_duplicate_entries_collapse(self):
        topology = ssr_topology(entries=[PublicEntry("assets", True), PublicEntry("assets", True)])
        assert [b.path_pattern for b in topology.cache_behaviors] == ["assets/*"]

    def test_empty_public_dir(self):
        topology = ssr_topology(entries=[])
        assert topology.cache_behaviors == ()
        assert topology.default_cache_behavior.target_origin_id == SERVER_FUNCTION_ORIGIN

    def test_host_forwarding_attached_everywhere(self):
        topology = ssr_topology()

        behaviors = [topology.default_cache_behavior, *topology.cache_behaviors]
        for behavior in behaviors:
            (association,) = behavior.function_associations
            assert association.event_type == "viewer-request"
            assert association.function_arn == {"Fn::GetAtt": [HOST_FORWARD_FUNCTION, "FunctionARN"]}

    def test_host_forwarding_disabled(self):
        topology = ssr_topology(FrontendConfig(ssr_forward_host=False))

        assert topology.default_cache_behavior.function_associations == ()
        assert all(not b.function_associations for b in topology.cache_behaviors)

    def test_no_default_root_object(self):
        assert ssr_topology().default_root_object is None


class TestStaticTopology:
    """Single-page apps without server compute."""

    def test_spa_shape(self):
        topology = TopologyBuilder(SPA).build()

        (group,) = topology.origin_groups
        assert group.id == STATIC_FILES_SPA
        assert group.members == (STATIC_FILES, STATIC_FILES_FALLBACK)
        assert topology.default_cache_behavior.target_origin_id == STATIC_FILES_SPA
        assert topology.cache_behaviors == ()
        assert topology.default_root_object == "index.html"

    def test_fallback_origin_path(self):
        topology = TopologyBuilder(SPA).build()

        fallback = next(o for o in topology.origins if o.id == STATIC_FILES_FALLBACK)
        assert fallback.origin_path == SPA_FALLBACK_PATH
        assert fallback.domain_name == StandardOrigins.STATIC_FILES.domain_name

    def test_public_entries_ignored(self):
        topology = TopologyBuilder(SPA).build(ENTRIES)
        assert topology.cache_behaviors == ()

    def test_no_function_associations(self):
        topology = TopologyBuilder(SPA).build()
        assert topology.default_cache_behavior.function_associations == ()


class TestDistributionSettings:
    def test_defaults(self):
        config = TopologyBuilder(SPA).build().to_cfn()

        assert config["Enabled"] is True
        assert config["HttpVersion"] == "http2and3"
        assert config["PriceClass"] == "PriceClass_100"
        assert config["IPV6Enabled"] is True
        assert "Comment" not in config

    def test_overrides(self):
        config = FrontendConfig(
            cloudfront={"description": "shop", "price_class": "PriceClass_All", "ipv6": False,
                        "enabled": False, "http": "http2"}
        )
        rendered = TopologyBuilder(SPA, config).build().to_cfn()

        assert rendered["Comment"] == "shop"
        assert rendered["PriceClass"] == "PriceClass_All"
        assert rendered["IPV6Enabled"] is False
        assert rendered["Enabled"] is False
        assert rendered["HttpVersion"] == "http2"


class TestAliasCertificate:
    def test_both_applied(self):
        config = FrontendConfig(aliases="example.com,www.example.com", certificate="arn:cert")
        rendered = TopologyBuilder(SPA, config).build().to_cfn()

        assert rendered["Aliases"] == ["example.com", "www.example.com"]
        assert rendered["ViewerCertificate"] == {
            "AcmCertificateArn": "arn:cert",
            "MinimumProtocolVersion": "TLSv1.2_2021",
            "SslSupportMethod": "sni-only",
        }

    def test_ssl_version(self):
        config = FrontendConfig(aliases=["example.com"], certificate="arn:cert",
                                cloudfront={"ssl_version": "TLSv1.2_2025"})
        rendered = TopologyBuilder(SPA, config).build().to_cfn()
        assert rendered["ViewerCertificate"]["MinimumProtocolVersion"] == "TLSv1.2_2025"

    @pytest.mark.parametrize(
        "aliases, certificate",
        [(["example.com"], None), ([], "arn:cert")],
    )
    def test_partial_configuration_drops_both(self, aliases, certificate):
        config = FrontendConfig(aliases=aliases, certificate=certificate)
        topology = TopologyBuilder(SPA, config).build()
        rendered = topology.to_cfn()

        assert "Aliases" not in rendered
        assert "ViewerCertificate" not in rendered
        assert len(topology.warnings) == 1

    def test_check_reports_warning(self):
        check = check_alias_certificate(["example.com"], None)
        assert not check.applied
        assert "no certificate" in check.warning

    def test_check_nothing_configured(self):
        check = check_alias_certificate([], None)
        assert check.warning is None
        assert not check.applied


class TestRendering:
    def test_ssr_cfn_shape(self):
        rendered = ssr_topology().to_cfn()

        assert rendered["OriginGroups"]["Quantity"] == 1
        group = rendered["OriginGroups"]["Items"][0]
        assert group["FailoverCriteria"]["StatusCodes"] == {"Quantity": 2, "Items": [403, 404]}
        assert group["Members"]["Items"] == [{"OriginId": STATIC_FILES}, {"OriginId": SERVER_FUNCTION_ORIGIN}]
        assert "PathPattern" not in rendered["DefaultCacheBehavior"]
        assert [b["PathPattern"] for b in rendered["CacheBehaviors"]] == ["assets/*", "favicon.ico"]

    def test_origin_rendering(self):
        rendered = ssr_topology().to_cfn()
        static, server = rendered["Origins"]

        assert static["S3OriginConfig"] == {"OriginAccessIdentity": ""}
        assert static["OriginAccessControlId"] == {"Fn::GetAtt": ["SiteOriginAccessControl", "Id"]}
        assert server["CustomOriginConfig"]["OriginProtocolPolicy"] == "https-only"

    def test_server_cache_policy_reference(self):
        rendered = ssr_topology().to_cfn()
        assert rendered["DefaultCacheBehavior"]["CachePolicyId"] == {"Ref": "SiteSSRCachePolicy"}


class TestValidate:
    def test_unknown_target(self):
        topology = DistributionTopology(
            default_cache_behavior=StandardCacheBehaviors.SERVER_FUNCTION,
            origins=(StandardOrigins.STATIC_FILES,),
        )
        with pytest.raises(ConfigurationError, match="unknown origin"):
            topology.validate()

    def test_group_id_collision(self):
        topology = DistributionTopology(
            default_cache_behavior=StandardCacheBehaviors.SERVER_FUNCTION,
            origins=(StandardOrigins.STATIC_FILES, StandardOrigins.SERVER_FUNCTION),
            origin_groups=(OriginGroup(STATIC_FILES, STATIC_FILES, SERVER_FUNCTION_ORIGIN),),
        )
        with pytest.raises(ConfigurationError, match="collides"):
            topology.validate()

    def test_group_member_missing(self):
        topology = DistributionTopology(
            default_cache_behavior=StandardCacheBehaviors.STATIC_FILES_WITH_FALLBACK,
            origins=(StandardOrigins.STATIC_FILES,),
            origin_groups=(OriginGroup(STATIC_FILES_SPA, STATIC_FILES, STATIC_FILES_FALLBACK),),
        )
        with pytest.raises(ConfigurationError, match="unknown origins"):
            topology.validate()

    def test_duplicate_patterns(self):
        behavior = StandardCacheBehaviors.STATIC_FILES.at("assets/*")
        topology = DistributionTopology(
            default_cache_behavior=StandardCacheBehaviors.SERVER_FUNCTION,
            origins=(StandardOrigins.STATIC_FILES, StandardOrigins.SERVER_FUNCTION),
            origin_groups=(OriginGroup(STATIC_FILES_SSR, STATIC_FILES, SERVER_FUNCTION_ORIGIN),),
            cache_behaviors=(behavior, behavior),
        )
        with pytest.raises(ConfigurationError, match="Duplicate"):
            topology.validate()

    def test_duplicate_origin_ids(self):
        origin = Origin("StaticFiles", OriginKind.OBJECT_STORE, "bucket.s3.amazonaws.com")
        topology = DistributionTopology(
            default_cache_behavior=CacheBehavior(
                target_origin_id=STATIC_FILES,
                cache_policy_id="id",
                origin_request_policy_id="id",
                allowed_methods=("GET", "HEAD"),
                cached_methods=("GET", "HEAD"),
            ),
            origins=(origin, origin),
        )
        with pytest.raises(ConfigurationError, match="Duplicate origin ids"):
            topology.validate()
