#!/usr/bin/env python3
"""
Run a platform server.

SERVER_PROFILE selects the process type:
    auth  - owns sessions (revokes them for suspended/inactive users)
    main  - validates sessions only
"""

import os
import sys


def main() -> None:
    # Make src importable
    repo_root = os.path.dirname(__file__)
    sys.path.insert(0, os.path.join(repo_root, "src"))

    import uvicorn

    from web.app import create_app
    from web.dependencies import ServerProfile

    profile = ServerProfile(os.getenv("SERVER_PROFILE", ServerProfile.MAIN.value).lower())

    uvicorn.run(
        create_app(profile),
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
