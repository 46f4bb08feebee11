"""
Library package for respira-form-service.

Prompt -> Tally form compiler plus the facade that ships compiled forms to Tally.

- Compiler: `src/programs/form_pipeline/`
- Facade: `respira_form_service.service.RespiraFormService`
- HTTP entrypoint: `api/main.py`
"""

from respira_form_service.service import NoWorkspaceError, RespiraFormService, ServiceNotConfiguredError

__all__ = ["NoWorkspaceError", "RespiraFormService", "ServiceNotConfiguredError"]
