#!/usr/bin/env python3
"""Cria o administrador padrão a partir de ADMIN_EMAIL / ADMIN_PASSWORD (.env).
   Uso: python3 scripts/create_admin.py [--reset-password]
   Não faz nada se o admin já existe (a não ser com --reset-password)."""
import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from dotenv import load_dotenv  # noqa: E402

load_dotenv(ROOT / ".env")

from sqlmodel import Session, select  # noqa: E402

from qrlove.core.config import settings  # noqa: E402
from qrlove.core.database import engine, init_db  # noqa: E402
from qrlove.core.security import hash_password  # noqa: E402
from qrlove.logging import setup_logging  # noqa: E402
from qrlove.models import Admin  # noqa: E402

log = logging.getLogger("qrlove")


def ensure_admin(session: Session, email: str, password: str, name: str, reset_password: bool = False) -> str:
    """Retorna "created", "updated" ou "exists"."""
    email = email.strip().lower()
    admin = session.exec(select(Admin).where(Admin.email == email)).first()
    if admin is None:
        session.add(Admin(email=email, password_hash=hash_password(password), name=name))
        session.commit()
        return "created"
    if reset_password:
        admin.password_hash = hash_password(password)
        session.add(admin)
        session.commit()
        return "updated"
    return "exists"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--reset-password", action="store_true", help="regrava a senha do admin existente")
    args = parser.parse_args(argv)

    setup_logging()
    if not settings.admin_email or not settings.admin_password:
        log.error("Defina ADMIN_EMAIL e ADMIN_PASSWORD no .env")
        return 1

    init_db()
    with Session(engine) as session:
        result = ensure_admin(
            session, settings.admin_email, settings.admin_password, settings.admin_name, args.reset_password
        )
    log.info("Admin %s: %s", settings.admin_email, result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
