"""
Deployment orchestration.

The orchestrator walks a fixed sequence of phases:

    add functions -> build -> package -> synthesize -> pre-upload
        -> apply -> post-upload

Each phase finishes all of its external effects before the next one may
start, and the allowed transitions are checked explicitly. Uploading the
assets before the infrastructure update means visitors still routed to the
old server version during the swap already get the new static files.
Invalidation and teardown are separate commands.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

import boto3

from .assets import list_public_entries, scan_assets
from .cloudfront import DistributionTopology
from .config import ResolvedConfig
from .errors import (
    BuildFailure,
    ConfigurationError,
    PhaseOrderError,
    PreconditionMissing,
    RemoteGenericFailure,
)
from .frameworks import FrameworkProfile
from .functions import ComputeUnit, compute_unit_for
from .introspection import StackIntrospector
from .invalidation import invalidate_distribution
from .packaging import write_archive
from .process import ProcessRunner
from .storage import SiteBucket
from .topology import TopologyBuilder

logger = logging.getLogger(__name__)

WORK_DIR = ".sitefront"
FUNCTION_ARTIFACT = f"{WORK_DIR}/frontend-function.zip"
ASSEMBLY_DIR = f"{WORK_DIR}/cdk.out"


class Phase(str, Enum):
    INITIAL = "initial"
    ADD_FUNCTIONS = "add-functions"
    BUILD = "build"
    PACKAGE = "package"
    SYNTHESIZE = "synthesize"
    PRE_UPLOAD = "pre-upload"
    APPLY = "apply"
    POST_UPLOAD = "post-upload"
    INVALIDATE = "invalidate"
    TEARDOWN = "teardown"
    COMPLETE = "complete"


# Commands may begin a run at any of the phases reachable from INITIAL.
# APPLY is only reachable through PRE_UPLOAD.
TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.INITIAL: frozenset(
        {Phase.ADD_FUNCTIONS, Phase.BUILD, Phase.SYNTHESIZE, Phase.POST_UPLOAD, Phase.INVALIDATE, Phase.TEARDOWN}
    ),
    Phase.ADD_FUNCTIONS: frozenset({Phase.BUILD, Phase.COMPLETE}),
    Phase.BUILD: frozenset({Phase.PACKAGE}),
    Phase.PACKAGE: frozenset({Phase.SYNTHESIZE, Phase.COMPLETE}),
    Phase.SYNTHESIZE: frozenset({Phase.PRE_UPLOAD, Phase.COMPLETE}),
    Phase.PRE_UPLOAD: frozenset({Phase.APPLY}),
    Phase.APPLY: frozenset({Phase.POST_UPLOAD}),
    Phase.POST_UPLOAD: frozenset({Phase.INVALIDATE, Phase.COMPLETE}),
    Phase.INVALIDATE: frozenset({Phase.COMPLETE}),
    Phase.TEARDOWN: frozenset({Phase.COMPLETE}),
    Phase.COMPLETE: frozenset(),
}


class InfrastructureApplier(Protocol):
    def deploy(self, assembly_dir: Path) -> None: ...

    def destroy(self) -> None: ...


class CdkApplier:
    """Deploys the synthesized assembly with the CDK CLI and deletes the stack through CloudFormation."""

    def __init__(
        self,
        stack_name: str,
        project_dir: Path,
        runner: ProcessRunner | None = None,
        cloudformation: Any = None,
        region: str | None = None,
    ):
        self.stack_name = stack_name
        self.project_dir = project_dir
        self.runner = runner or ProcessRunner()
        self._cloudformation = cloudformation
        self.region = region

    @property
    def cloudformation(self) -> Any:
        if self._cloudformation is None:
            self._cloudformation = boto3.client("cloudformation", region_name=self.region)
        return self._cloudformation

    def deploy(self, assembly_dir: Path) -> None:
        argv = [
            "npx", "cdk", "deploy", self.stack_name,
            "--app", str(assembly_dir),
            "--require-approval", "never",
        ]
        result = self.runner.run(argv, env=dict(os.environ), cwd=self.project_dir)
        if not result.ok:
            raise RemoteGenericFailure(
                f"cdk deploy exited with code {result.exit_code}\n{result.stderr}",
                code=str(result.exit_code),
            )

    def destroy(self) -> None:
        self.cloudformation.delete_stack(StackName=self.stack_name)
        self.cloudformation.get_waiter("stack_delete_complete").wait(StackName=self.stack_name)
        logger.info("Deleted stack %s", self.stack_name)


class DeploymentOrchestrator:
    """
    Runs the deployment phases for one resolved configuration.

    Usage:
        orchestrator = DeploymentOrchestrator(resolve_config(config, project_dir))
        orchestrator.run()
    """

    def __init__(
        self,
        resolved: ResolvedConfig,
        *,
        introspector: StackIntrospector | None = None,
        runner: ProcessRunner | None = None,
        applier: InfrastructureApplier | None = None,
        bucket_factory: Callable[[str], SiteBucket] | None = None,
        cloudfront_client: Any = None,
    ):
        self.resolved = resolved
        self.config = resolved.config
        self.project_dir = resolved.project_dir
        self.runner = runner or ProcessRunner()
        self._introspector = introspector
        self._applier = applier
        self._bucket_factory = bucket_factory
        self._cloudfront_client = cloudfront_client

        self.phase = Phase.INITIAL
        self.history: list[Phase] = []
        self.compute: ComputeUnit | None = None
        self.topology: DistributionTopology | None = None

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def introspector(self) -> StackIntrospector:
        if self._introspector is None:
            self._introspector = StackIntrospector(self.config.stack_name, region=self.config.region)
        return self._introspector

    @property
    def applier(self) -> InfrastructureApplier:
        if self._applier is None:
            self._applier = CdkApplier(
                self.config.stack_name, self.project_dir, self.runner, region=self.config.region
            )
        return self._applier

    @property
    def cloudfront_client(self) -> Any:
        if self._cloudfront_client is None:
            self._cloudfront_client = boto3.client("cloudfront")
        return self._cloudfront_client

    def site_bucket(self, bucket_name: str) -> SiteBucket:
        if self._bucket_factory is not None:
            return self._bucket_factory(bucket_name)
        return SiteBucket(bucket_name, region=self.config.region)

    # ------------------------------------------------------------------
    # Phase bookkeeping
    # ------------------------------------------------------------------

    def _enter(self, phase: Phase) -> None:
        if phase not in TRANSITIONS[self.phase]:
            raise PhaseOrderError(f"Cannot start {phase.value} after {self.phase.value}")
        logger.info("Phase %s", phase.value)
        self.phase = phase
        self.history.append(phase)

    def complete(self) -> None:
        self._enter(Phase.COMPLETE)

    @property
    def profile(self) -> FrameworkProfile | None:
        return self.resolved.profile

    def _require_profile(self) -> FrameworkProfile:
        if self.profile is None:
            raise ConfigurationError("No supported frontend framework detected or configured")
        return self.profile

    @property
    def artifact_path(self) -> Path:
        return self.resolved.path(FUNCTION_ARTIFACT)

    @property
    def assembly_dir(self) -> Path:
        return self.resolved.path(ASSEMBLY_DIR)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def compute_unit(self) -> ComputeUnit | None:
        return compute_unit_for(self.resolved, self.artifact_path)

    def add_functions(self) -> ComputeUnit | None:
        self._enter(Phase.ADD_FUNCTIONS)
        self.compute = self.compute_unit()
        if self.compute is not None:
            logger.info("Registered server function %s", self.compute.name)
        return self.compute

    def build_command(self) -> list[str]:
        argv = self.config.build_argv()
        if argv is not None:
            if not argv:
                raise ConfigurationError("No build command given")
            return argv
        if self.profile is None:
            raise ConfigurationError(
                "No build command configured and no supported frontend framework detected"
            )
        return [self.resolved.package_manager, "run", "build"]

    def build_environment(self) -> dict[str, str]:
        """Process environment, then framework variables, then user overrides."""
        env = dict(os.environ)
        if self.profile is not None and self.profile.runtime_preset:
            env["NITRO_PRESET"] = self.profile.runtime_preset
        env.update(self.config.build_environment)
        return env

    def build(self) -> None:
        command = self.build_command()
        self._enter(Phase.BUILD)
        logger.info("Building frontend: %s", " ".join(command))
        result = self.runner.run(
            command,
            env=self.build_environment(),
            cwd=self.project_dir,
            timeout=self.config.build_timeout,
        )
        if not result.ok:
            raise BuildFailure(
                f"Build exited with code {result.exit_code}",
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
            )

    def package(self) -> Path | None:
        self._enter(Phase.PACKAGE)
        profile = self.profile
        if profile is None or profile.server_dir is None:
            return None
        source = self.resolved.path(profile.server_dir)
        if not source.is_dir():
            raise PreconditionMissing(f"Build output {source} not found; run the build first")
        return write_archive(self.artifact_path, source)

    def build_topology(self) -> DistributionTopology:
        profile = self._require_profile()
        entries = []
        if profile.has_server_compute:
            public_dir = self.resolved.path(profile.public_dir)
            if not public_dir.is_dir():
                raise PreconditionMissing(f"Public directory {public_dir} not found; run the build first")
            entries = list_public_entries(public_dir)
        return TopologyBuilder(profile, self.config).build(entries)

    def emit_template(self, topology: DistributionTopology, compute: ComputeUnit | None) -> Path:
        """Synthesize the site stack into the cloud assembly directory."""
        import aws_cdk as cdk

        from .site_stack import SiteStack

        app = cdk.App(outdir=str(self.assembly_dir))
        SiteStack(app, self.config.stack_name,
            topology=topology,
            compute=compute,
            forward_host=self.config.ssr_forward_host,
            env=cdk.Environment(region=self.config.region) if self.config.region else None,
        )
        app.synth()
        logger.info("Synthesized %s into %s", self.config.stack_name, self.assembly_dir)
        return self.assembly_dir

    def synthesize(self) -> DistributionTopology:
        self._enter(Phase.SYNTHESIZE)
        self.topology = self.build_topology()
        self.emit_template(self.topology, self.compute_unit())
        return self.topology

    def pre_upload(self) -> int:
        self._enter(Phase.PRE_UPLOAD)
        if not self.resolved.has_server_compute:
            return 0
        bucket_name = self.introspector.bucket_name()
        if bucket_name is None:
            logger.info("Site bucket does not exist yet. Skipping upload before deployment")
            return 0
        return self._upload(bucket_name)

    def apply(self) -> None:
        self._enter(Phase.APPLY)
        self.applier.deploy(self.assembly_dir)

    def post_upload(self) -> int:
        self._enter(Phase.POST_UPLOAD)
        bucket_name = self.introspector.bucket_name()
        if bucket_name is None:
            raise PreconditionMissing(
                f"Stack {self.config.stack_name} has no SiteBucketName output; deploy the stack first"
            )
        return self._upload(bucket_name)

    def _upload(self, bucket_name: str) -> int:
        records = scan_assets(self._require_profile(), self.project_dir)
        return self.site_bucket(bucket_name).upload(records)

    def invalidate(self) -> str | None:
        self._enter(Phase.INVALIDATE)
        distribution_id = self.introspector.distribution_id()
        if distribution_id is None:
            logger.info("Site distribution not found. Skipping invalidation")
            return None
        return invalidate_distribution(self.cloudfront_client, distribution_id)

    def empty_bucket(self) -> int:
        self._enter(Phase.TEARDOWN)
        bucket_name = self.introspector.bucket_resource()
        if bucket_name is None:
            logger.info("Site S3 bucket not found. Skipping S3 bucket objects removal")
            return 0
        return self.site_bucket(bucket_name).empty()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def run(self) -> DistributionTopology:
        """Full deployment: every phase in order."""
        self.add_functions()
        self.build()
        self.package()
        topology = self.synthesize()
        self.pre_upload()
        self.apply()
        self.post_upload()
        self.complete()
        return topology

    def build_and_package(self) -> Path | None:
        self.build()
        artifact = self.package()
        self.complete()
        return artifact

    def synth(self) -> DistributionTopology:
        topology = self.synthesize()
        self.complete()
        return topology

    def upload(self) -> int:
        count = self.post_upload()
        self.complete()
        return count

    def remove(self) -> None:
        """Empty the site bucket, then delete the stack."""
        self.empty_bucket()
        self.applier.destroy()
        self.complete()

    def site_url(self) -> str | None:
        return self.introspector.site_url()
