#!/usr/bin/env python3
"""
Seed de desarrollo: crea las tablas y un usuario por rol.

    python scripts/seed.py
"""
import logging

from app.config.database import Base, SessionLocal, engine
from app.core.auth.security import hash_password
from app.shared.database.models import User

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("seed")

SEED_USERS = [
    {"email": "admin@empresa.com", "first_name": "Admin", "last_name": "Principal",
     "role": "administrador", "password": "Admin123*"},
    {"email": "vendedor@empresa.com", "first_name": "Vendedor", "last_name": "Ejemplo",
     "role": "vendedor", "password": "Vendedor123*"},
    {"email": "consultor@empresa.com", "first_name": "Consultor", "last_name": "Ejemplo",
     "role": "consultor", "password": "Consultor123*"},
]


def seed_users(db) -> int:
    created = 0
    for data in SEED_USERS:
        if db.query(User).filter(User.email == data["email"]).first():
            logger.info(f"- {data['email']} ya existe, se omite")
            continue

        db.add(User(
            email=data["email"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            role=data["role"],
            password_hash=hash_password(data["password"]),
            is_active=True
        ))
        created += 1
        logger.info(f"- {data['first_name']} {data['last_name']} ({data['email']}) - Rol: {data['role']}")

    db.commit()
    return created


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = seed_users(db)
        logger.info(f"✅ Base de datos inicializada: {created} usuario(s) creados")
    finally:
        db.close()


if __name__ == "__main__":
    main()
