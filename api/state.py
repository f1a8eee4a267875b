# Serverless function entry point (/api/state). Same app as the long-running
# process, so the reset rules and templates live only in tracker_api.
from tracker_api.server import app

__all__ = ["app"]
