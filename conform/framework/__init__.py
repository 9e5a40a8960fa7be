"""Project-specific framework: the gate's model and its three phases.

Common entrypoints:

- `conform.framework.config`: typed configuration document (`ConformConfig`)
- `conform.framework.metadata`: repository metadata shared by policies and scripts
- `conform.framework.enforcement`: the ordered, fail-fast policy loop
- `conform.framework.pipeline`: stage/task resolution into a `BuiltPipeline`
- `conform.framework.script`: sequential script execution

For reusable, project-agnostic primitives, use `conformkit`.
"""
