#!/usr/bin/env python3
import os
from pathlib import Path

import aws_cdk as cdk

from sitefront.config import DEFAULT_CONFIG_FILE, load_frontend_config, resolve_config
from sitefront.orchestrator import DeploymentOrchestrator
from sitefront.site_stack import SiteStack

project_dir = Path(os.environ.get("SITEFRONT_PROJECT", ".")).resolve()
config = load_frontend_config(project_dir / DEFAULT_CONFIG_FILE)
orchestrator = DeploymentOrchestrator(resolve_config(config, project_dir))

app = cdk.App()
SiteStack(app, config.stack_name,
    topology=orchestrator.build_topology(),
    compute=orchestrator.compute_unit(),
    forward_host=config.ssr_forward_host,
)

app.synth()
