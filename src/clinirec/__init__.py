"""clinirec - Clinical records client.

Session and role-based navigation for a clinical-records service, plus
local entity caches kept in sync with its REST API.
"""

from clinirec.version import __version__

__all__ = ["__version__"]
