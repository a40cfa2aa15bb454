"""syncdocs HTTP management API.

Usage
-----
Create and run the application::

    from syncdocs.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # repository management endpoints

"""

from syncdocs.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
