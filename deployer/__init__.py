"""
deployer package

Build and deploy a Rust AWS Lambda function with `cargo lambda`.

Key responsibilities are split across modules:
- `envfile.py`: parse a `.env` file and export its entries into the environment
- `cross.py`: cross-compilation variables for the Lambda target (OpenSSL, pkg-config)
- `config.py`: optional `deployer.yaml` project configuration
- `pipeline.py`: sequential stage runner (clean -> build -> load env -> deploy)
- `verify.py`: optional post-deploy probe of the function URL
- `cli.py`: CLI entrypoint and orchestration
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
