"""Package entry point for ``python -m roastmenow``.

WHY: Users run the terminal player as ``python -m roastmenow octocat`` or
start the HTTP API with ``python -m roastmenow --serve``.

HOW: Checks sys.argv for the ``--serve`` flag. If present, starts the
FastAPI app under uvicorn. Otherwise, delegates to the CLI's main().
"""

import sys

if __name__ == "__main__":
    if "--serve" in sys.argv:
        from roastmenow.server.app import run_api
        run_api()
    else:
        from roastmenow.cli import main
        sys.exit(main())
