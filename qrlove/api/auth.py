import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session, select

from qrlove.core.database import get_db
from qrlove.core.rate_limit import get_client_ip, limiter
from qrlove.core.security import create_access_token, verify_password
from qrlove.models import Admin
from qrlove.schemas import Token

log = logging.getLogger("qrlove")

router = APIRouter(prefix="/admin", tags=["admin-auth"])


@router.post("/login", response_model=Token)
@limiter.limit("5/minute;20/hour")
async def admin_login(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    email = (form.get("email") or "").strip().lower()
    password = form.get("password") or ""
    if not email:
        raise HTTPException(status_code=422, detail="Informe o e-mail.")
    if not password:
        raise HTTPException(status_code=422, detail="Informe a senha.")
    admin = db.exec(select(Admin).where(Admin.email == email)).first()
    if not admin or not verify_password(password, admin.password_hash):
        log.warning("Admin login failed: email=%s ip=%s", email, get_client_ip(request))
        raise HTTPException(status_code=401, detail="E-mail ou senha incorretos.")
    admin.last_login_at = datetime.utcnow()
    db.add(admin)
    db.commit()
    return Token(access_token=create_access_token({"sub": str(admin.id), "scope": "admin"}))
