"""
CloudFront distribution model.

Origins, origin groups and cache behaviors are plain immutable values that
render to the CloudFormation ``DistributionConfig`` shape with ``to_cfn()``.
References to other template resources are CloudFormation intrinsics,
resolved when the template is deployed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Union

from .errors import ConfigurationError

CfnValue = Union[str, dict[str, Any]]

# Logical ids of the template resources the distribution refers to. The
# bucket and distribution ids are also looked up again after deployment.
SITE_BUCKET = "SiteBucket"
SITE_BUCKET_POLICY = "SiteBucketPolicy"
SITE_DISTRIBUTION = "SiteDistribution"
ORIGIN_ACCESS_CONTROL = "SiteOriginAccessControl"
SSR_CACHE_POLICY = "SiteSSRCachePolicy"
HOST_FORWARD_FUNCTION = "SiteHostForwardFunction"
SERVER_FUNCTION = "ServerLambdaFunction"
SERVER_FUNCTION_URL = "ServerLambdaFunctionUrl"

# Origin and origin group ids share the TargetOriginId namespace.
STATIC_FILES = "StaticFiles"
STATIC_FILES_FALLBACK = "StaticFilesFallback"
SERVER_FUNCTION_ORIGIN = "ServerFunction"
STATIC_FILES_SSR = "StaticFilesSSR"
STATIC_FILES_SPA = "StaticFilesSPA"

FAILOVER_STATUS_CODES = frozenset({403, 404})
SPA_FALLBACK_PATH = "/index.html?fallback="
DEFAULT_ROOT_OBJECT = "index.html"


class CachePolicies:
    CACHING_OPTIMIZED = "658327ea-f89d-4fab-a63d-7e88639e58f6"
    SERVER_FUNCTION: CfnValue = {"Ref": SSR_CACHE_POLICY}


class OriginRequestPolicies:
    ALL_VIEWER_EXCEPT_HOST_HEADER = "b689b0a8-53d0-40ab-baf2-68738e2966ac"
    CORS_S3_ORIGIN = "88a5eaf4-2fd4-4709-b370-b4c650ea3fcf"


class HttpMethods:
    READ_WITHOUT_CORS = ("GET", "HEAD")
    READ = ("GET", "HEAD", "OPTIONS")
    READ_WRITE = ("GET", "HEAD", "OPTIONS", "PUT", "PATCH", "POST", "DELETE")


SERVER_FUNCTION_CACHE_POLICY_CONFIG: dict[str, Any] = {
    "Name": {"Fn::Sub": "${AWS::StackName}-frontend"},
    "Comment": {"Fn::Sub": "SSR for ${AWS::StackName}"},
    "DefaultTTL": 0,
    "MinTTL": 0,
    "MaxTTL": 31536000,
    "ParametersInCacheKeyAndForwardedToOrigin": {
        "EnableAcceptEncodingBrotli": True,
        "EnableAcceptEncodingGzip": True,
        "CookiesConfig": {"CookieBehavior": "all"},
        "HeadersConfig": {
            "HeaderBehavior": "whitelist",
            "Headers": ["origin", "x-forwarded-host"],
        },
        "QueryStringsConfig": {"QueryStringBehavior": "all"},
    },
}

HOST_FORWARD_FUNCTION_CODE = """\
function handler(event) {
  var request = event.request;
  if (request.headers.host) {
    request.headers['x-forwarded-host'] = { value: request.headers.host.value };
  }
  return request;
}
"""


def get_att(logical_id: str, attribute: str) -> dict[str, Any]:
    return {"Fn::GetAtt": [logical_id, attribute]}


def _quantity(items: list[Any]) -> dict[str, Any]:
    return {"Quantity": len(items), "Items": items}


class OriginKind(str, Enum):
    OBJECT_STORE = "objectStoreOrigin"
    HTTP = "httpOrigin"


@dataclass(frozen=True)
class Origin:
    id: str
    kind: OriginKind
    domain_name: CfnValue
    origin_path: str | None = None

    def to_cfn(self) -> dict[str, Any]:
        rendered: dict[str, Any] = {"Id": self.id, "DomainName": self.domain_name}
        if self.kind is OriginKind.OBJECT_STORE:
            rendered["OriginAccessControlId"] = get_att(ORIGIN_ACCESS_CONTROL, "Id")
            rendered["S3OriginConfig"] = {"OriginAccessIdentity": ""}
        else:
            rendered["CustomOriginConfig"] = {
                "OriginProtocolPolicy": "https-only",
                "OriginSSLProtocols": ["TLSv1.2"],
            }
        if self.origin_path is not None:
            rendered["OriginPath"] = self.origin_path
        return rendered


@dataclass(frozen=True)
class OriginGroup:
    id: str
    primary_origin_id: str
    secondary_origin_id: str
    failover_status_codes: frozenset[int] = FAILOVER_STATUS_CODES

    @property
    def members(self) -> tuple[str, str]:
        return (self.primary_origin_id, self.secondary_origin_id)

    def to_cfn(self) -> dict[str, Any]:
        return {
            "Id": self.id,
            "FailoverCriteria": {
                "StatusCodes": _quantity(sorted(self.failover_status_codes)),
            },
            "Members": _quantity([{"OriginId": member} for member in self.members]),
        }


@dataclass(frozen=True)
class FunctionAssociation:
    function_arn: CfnValue
    event_type: str = "viewer-request"

    def to_cfn(self) -> dict[str, Any]:
        return {"EventType": self.event_type, "FunctionARN": self.function_arn}


@dataclass(frozen=True)
class CacheBehavior:
    target_origin_id: str
    cache_policy_id: CfnValue
    origin_request_policy_id: str
    allowed_methods: tuple[str, ...]
    cached_methods: tuple[str, ...]
    path_pattern: str | None = None
    viewer_protocol_policy: str = "redirect-to-https"
    compress: bool = True
    function_associations: tuple[FunctionAssociation, ...] = ()

    def at(self, path_pattern: str) -> CacheBehavior:
        return replace(self, path_pattern=path_pattern)

    def with_function(self, association: FunctionAssociation) -> CacheBehavior:
        return replace(self, function_associations=(*self.function_associations, association))

    def to_cfn(self) -> dict[str, Any]:
        rendered: dict[str, Any] = {}
        if self.path_pattern is not None:
            rendered["PathPattern"] = self.path_pattern
        rendered.update(
            {
                "AllowedMethods": list(self.allowed_methods),
                "CachedMethods": list(self.cached_methods),
                "CachePolicyId": self.cache_policy_id,
                "Compress": self.compress,
                "OriginRequestPolicyId": self.origin_request_policy_id,
                "TargetOriginId": self.target_origin_id,
                "ViewerProtocolPolicy": self.viewer_protocol_policy,
            }
        )
        if self.function_associations:
            rendered["FunctionAssociations"] = [a.to_cfn() for a in self.function_associations]
        return rendered


class StandardCacheBehaviors:
    STATIC_FILES = CacheBehavior(
        target_origin_id=STATIC_FILES_SSR,
        cache_policy_id=CachePolicies.CACHING_OPTIMIZED,
        origin_request_policy_id=OriginRequestPolicies.CORS_S3_ORIGIN,
        allowed_methods=HttpMethods.READ_WITHOUT_CORS,
        cached_methods=HttpMethods.READ_WITHOUT_CORS,
    )
    STATIC_FILES_WITH_FALLBACK = CacheBehavior(
        target_origin_id=STATIC_FILES_SPA,
        cache_policy_id=CachePolicies.CACHING_OPTIMIZED,
        origin_request_policy_id=OriginRequestPolicies.CORS_S3_ORIGIN,
        allowed_methods=HttpMethods.READ_WITHOUT_CORS,
        cached_methods=HttpMethods.READ_WITHOUT_CORS,
    )
    SERVER_FUNCTION = CacheBehavior(
        target_origin_id=SERVER_FUNCTION_ORIGIN,
        cache_policy_id=CachePolicies.SERVER_FUNCTION,
        origin_request_policy_id=OriginRequestPolicies.ALL_VIEWER_EXCEPT_HOST_HEADER,
        allowed_methods=HttpMethods.READ_WRITE,
        cached_methods=HttpMethods.READ,
    )


class StandardOrigins:
    STATIC_FILES = Origin(
        id=STATIC_FILES,
        kind=OriginKind.OBJECT_STORE,
        domain_name=get_att(SITE_BUCKET, "RegionalDomainName"),
    )
    STATIC_FILES_FALLBACK = Origin(
        id=STATIC_FILES_FALLBACK,
        kind=OriginKind.OBJECT_STORE,
        domain_name=get_att(SITE_BUCKET, "RegionalDomainName"),
        origin_path=SPA_FALLBACK_PATH,
    )
    # Function URLs look like https://<id>.lambda-url.<region>.on.aws/
    SERVER_FUNCTION = Origin(
        id=SERVER_FUNCTION_ORIGIN,
        kind=OriginKind.HTTP,
        domain_name={
            "Fn::Select": [2, {"Fn::Split": ["/", get_att(SERVER_FUNCTION_URL, "FunctionUrl")]}]
        },
    )


@dataclass(frozen=True)
class ViewerCertificate:
    acm_certificate_arn: str
    minimum_protocol_version: str = "TLSv1.2_2021"
    ssl_support_method: str = "sni-only"

    def to_cfn(self) -> dict[str, Any]:
        return {
            "AcmCertificateArn": self.acm_certificate_arn,
            "MinimumProtocolVersion": self.minimum_protocol_version,
            "SslSupportMethod": self.ssl_support_method,
        }


@dataclass(frozen=True)
class DistributionTopology:
    default_cache_behavior: CacheBehavior
    origins: tuple[Origin, ...]
    cache_behaviors: tuple[CacheBehavior, ...] = ()
    origin_groups: tuple[OriginGroup, ...] = ()
    enabled: bool = True
    http_version: str = "http2and3"
    price_class: str = "PriceClass_100"
    ipv6_enabled: bool = True
    comment: str | None = None
    aliases: tuple[str, ...] = ()
    viewer_certificate: ViewerCertificate | None = None
    default_root_object: str | None = None
    warnings: tuple[str, ...] = field(default=(), compare=False)

    @property
    def origin_ids(self) -> set[str]:
        return {origin.id for origin in self.origins}

    @property
    def target_ids(self) -> set[str]:
        return self.origin_ids | {group.id for group in self.origin_groups}

    def validate(self) -> None:
        """Check the referential invariants of the topology."""
        origin_ids = [origin.id for origin in self.origins]
        if len(origin_ids) != len(set(origin_ids)):
            raise ConfigurationError(f"Duplicate origin ids: {origin_ids}")

        for group in self.origin_groups:
            if group.id in self.origin_ids:
                raise ConfigurationError(f"Origin group id '{group.id}' collides with an origin id")
            missing = [m for m in group.members if m not in self.origin_ids]
            if missing:
                raise ConfigurationError(f"Origin group '{group.id}' references unknown origins {missing}")

        if self.default_cache_behavior.path_pattern is not None:
            raise ConfigurationError("The default cache behavior cannot have a path pattern")

        seen: set[str] = set()
        for behavior in (self.default_cache_behavior, *self.cache_behaviors):
            if behavior.target_origin_id not in self.target_ids:
                raise ConfigurationError(
                    f"Cache behavior targets unknown origin '{behavior.target_origin_id}'"
                )
        for behavior in self.cache_behaviors:
            if behavior.path_pattern is None:
                raise ConfigurationError("Path-scoped cache behaviors need a path pattern")
            if behavior.path_pattern in seen:
                raise ConfigurationError(f"Duplicate cache behavior path pattern '{behavior.path_pattern}'")
            seen.add(behavior.path_pattern)

        if bool(self.aliases) != (self.viewer_certificate is not None):
            raise ConfigurationError("Aliases and a viewer certificate must be configured together")

    def to_cfn(self) -> dict[str, Any]:
        config: dict[str, Any] = {
            "Enabled": self.enabled,
            "HttpVersion": self.http_version,
            "PriceClass": self.price_class,
            "IPV6Enabled": self.ipv6_enabled,
        }
        if self.comment is not None:
            config["Comment"] = self.comment
        if self.aliases and self.viewer_certificate is not None:
            config["Aliases"] = list(self.aliases)
            config["ViewerCertificate"] = self.viewer_certificate.to_cfn()
        if self.default_root_object is not None:
            config["DefaultRootObject"] = self.default_root_object
        config["Origins"] = [origin.to_cfn() for origin in self.origins]
        if self.origin_groups:
            config["OriginGroups"] = _quantity([group.to_cfn() for group in self.origin_groups])
        config["DefaultCacheBehavior"] = self.default_cache_behavior.to_cfn()
        config["CacheBehaviors"] = [behavior.to_cfn() for behavior in self.cache_behaviors]
        return config
