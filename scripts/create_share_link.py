"""
Crea o desactiva enlaces del visor de solo lectura.

Run inside the API container to use 'postgres' host and project PYTHONPATH:
    docker compose exec api python scripts/create_share_link.py --name "Contador" --days 30
    docker compose exec api python scripts/create_share_link.py --deactivate <token>

El visor queda en /viewer?token=<token>.
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse

from app.database.database import SessionLocal, Base, engine
from app.modules.share_links.models import ShareLink
from app.modules.share_links.service import ShareLinkService


def main():
    parser = argparse.ArgumentParser(description="Manage read-only viewer links")
    parser.add_argument("--name", default=None, help="Nombre descriptivo del enlace")
    parser.add_argument("--days", type=int, default=None, help="Días de vigencia (sin valor: no expira)")
    parser.add_argument("--deactivate", metavar="TOKEN", default=None, help="Desactivar un enlace existente")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine, tables=[ShareLink.__table__])
    db = SessionLocal()
    try:
        service = ShareLinkService(db)
        if args.deactivate:
            link = service.deactivate_link(args.deactivate)
            print(f"Enlace desactivado: {link.name or link.id}")
        else:
            link = service.create_link(args.name, args.days)
            print(f"Token: {link.token}")
            print(f"Visor: /viewer?token={link.token}")
            if link.expires_at:
                print(f"Expira: {link.expires_at.isoformat()}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
