"""stackgen -- interactive project skeleton generator.

Scaffolds React, Flask and FastAPI projects from packaged Jinja2 templates,
runs the follow-up setup commands they need, and clones well-known
repositories.
"""

__version__ = "0.1.0"
