from __future__ import annotations

import os

from household_agenda.app import create_app

app = create_app()


if __name__ == "__main__":
  import uvicorn

  host = os.getenv("AGENDA_HOST", "0.0.0.0")
  port = int(os.getenv("AGENDA_PORT", "8000"))
  uvicorn.run(app, host=host, port=port)
