"""Seed two demo pharmacies with medicine batches spread across every risk tier."""
from datetime import date, timedelta

from medicycle.core.security import get_password_hash
from medicycle.db.init_db import init_db
from medicycle.db.session import SessionLocal
from medicycle.models.medicine import Medicine
from medicycle.models.user import User
from medicycle.models.enums import RedistributionStatus, UserRole
from medicycle.services.risk_classifier import classify_expiry

DEMO_PASSWORD = "demo-pass-2025"

PHARMACIES = [
    {"username": "City Pharmacy", "email": "city@medicycle.app", "location": "Downtown"},
    {"username": "Clinic B", "email": "clinicb@medicycle.app", "location": "North Side"},
]

# (name, batch, days until expiry, quantity, listed on market)
BATCHES = [
    ("Amoxicillin 500mg", "B-101", 12, 50, True),
    ("Paracetamol 500mg", "P-200", 150, 200, False),
    ("Metformin 500mg", "M-505", 45, 80, True),
    ("Insulin Glargine", "I-99", 5, 10, False),
    ("Cetirizine 10mg", "C-310", 75, 120, False),
    ("Azithromycin 250mg", "A-250", -3, 30, False),
]


def _get_or_create_user(db, spec: dict) -> User:
    user = db.query(User).filter(User.email == spec["email"]).first()
    if user:
        return user
    user = User(
        username=spec["username"],
        email=spec["email"],
        location=spec["location"],
        hashed_password=get_password_hash(DEMO_PASSWORD),
        role=UserRole.PHARMACY.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"✅ Created pharmacy: {user.username} ({user.email})")
    return user


def seed_inventory():
    init_db()
    db = SessionLocal()
    try:
        owner, _ = [_get_or_create_user(db, spec) for spec in PHARMACIES]

        db.query(Medicine).filter(Medicine.owner_id == owner.id).delete()
        today = date.today()
        for name, batch, days, quantity, listed in BATCHES:
            expiry = today + timedelta(days=days)
            db.add(
                Medicine(
                    owner_id=owner.id,
                    name=name,
                    batch_number=batch,
                    expiry_date=expiry,
                    quantity=quantity,
                    redistribution_status=(
                        RedistributionStatus.AVAILABLE.value if listed else RedistributionStatus.NONE.value
                    ),
                )
            )
            print(f"   {name:<22} {batch:<6} {classify_expiry(expiry, today).level.value}")
        db.commit()
        print(f"\n✅ Seeded {len(BATCHES)} batches for {owner.username}")
        print(f"   Demo password for both pharmacies: {DEMO_PASSWORD}")
    finally:
        db.close()


if __name__ == "__main__":
    seed_inventory()
