"""azprov - declarative Azure provisioning planner

Philosophy:
- Explicit dependency graph, no hidden ordering
- Forward-only apply (no automatic rollback)
- Fail fast on configuration errors, before any side effect

azprov plans and applies stacks of Azure resources (for example a Logic App
Standard on an App Service Environment) from a YAML descriptor file, and
deploys workflow packages onto the provisioned Logic App.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
