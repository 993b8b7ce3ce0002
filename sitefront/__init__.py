"""
sitefront - CloudFront + S3 deployment for web-framework build output.

Synthesizes a CloudFront distribution from the detected framework's build
output and orchestrates build, packaging, asset upload, the stack update
and cache invalidation.

Usage:
    sitefront deploy        # Build, package, synthesize, upload and deploy
    sitefront build         # Build and package only
    sitefront upload        # Upload assets to the deployed bucket
    sitefront invalidate    # Invalidate the distribution cache
    sitefront remove        # Empty the bucket and delete the stack
"""

from .assets import AssetRecord, CacheControlClass, classify, scan_assets
from .cloudfront import CacheBehavior, DistributionTopology, Origin, OriginGroup
from .config import FrontendConfig, ResolvedConfig, load_frontend_config, resolve_config
from .errors import (
    BuildFailure,
    ConfigurationError,
    PhaseOrderError,
    PreconditionMissing,
    RemoteAccessDenied,
    RemoteGenericFailure,
    SitefrontError,
)
from .frameworks import Framework, FrameworkProfile, FrameworkResolver, ProjectSignals, resolve
from .introspection import StackIntrospector
from .orchestrator import DeploymentOrchestrator, Phase
from .topology import TopologyBuilder, check_alias_certificate

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "FrontendConfig",
    "ResolvedConfig",
    "load_frontend_config",
    "resolve_config",
    # Frameworks
    "Framework",
    "FrameworkProfile",
    "FrameworkResolver",
    "ProjectSignals",
    "resolve",
    # Assets
    "AssetRecord",
    "CacheControlClass",
    "classify",
    "scan_assets",
    # Topology
    "CacheBehavior",
    "DistributionTopology",
    "Origin",
    "OriginGroup",
    "TopologyBuilder",
    "check_alias_certificate",
    # Orchestration
    "DeploymentOrchestrator",
    "Phase",
    "StackIntrospector",
    # Errors
    "SitefrontError",
    "ConfigurationError",
    "BuildFailure",
    "PreconditionMissing",
    "RemoteAccessDenied",
    "RemoteGenericFailure",
    "PhaseOrderError",
]
