"""Seed a demo business with users and a blinds product catalog."""

from database import SessionLocal, init_db
from models.models import Business, Product, User
from services.auth import create_access_token

# Ensure tables exist
init_db()

DEMO_BUSINESS = {"name": "Demo Blinds Co", "email": "office@demoblinds.example", "phone": "01234 567890"}

DEMO_USERS = [
    {"email": "owner@demoblinds.example", "name": "Dana Owner", "role": "business"},
    {"email": "fitter@demoblinds.example", "name": "Sam Fitter", "role": "employee"},
]

SEED_PRODUCTS = [
    # Roller
    {"name": "Blackout Roller Blind",     "category": "roller",   "price": 89.00},
    {"name": "Sunscreen Roller Blind",    "category": "roller",   "price": 79.00},
    {"name": "Day & Night Roller Blind",  "category": "roller",   "price": 119.00},

    # Vertical
    {"name": "Fabric Vertical Blind",     "category": "vertical", "price": 95.00},
    {"name": "PVC Vertical Blind",        "category": "vertical", "price": 85.00},

    # Venetian
    {"name": "Aluminium Venetian Blind",  "category": "venetian", "price": 65.00},
    {"name": "Faux Wood Venetian Blind",  "category": "venetian", "price": 110.00},
    {"name": "Real Wood Venetian Blind",  "category": "venetian", "price": 145.00},

    # Roman & pleated
    {"name": "Lined Roman Blind",         "category": "roman",    "price": 160.00},
    {"name": "Perfect Fit Pleated Blind", "category": "pleated",  "price": 99.00},

    # Shutters
    {"name": "Full Height Shutter",       "category": "shutter",  "price": 420.00},
    {"name": "Cafe Style Shutter",        "category": "shutter",  "price": 280.00},
]


def seed():
    db = SessionLocal()
    try:
        business = db.query(Business).filter_by(name=DEMO_BUSINESS["name"]).first()
        if business is None:
            business = Business(**DEMO_BUSINESS)
            db.add(business)
            db.flush()

        owner = None
        for data in DEMO_USERS:
            user = db.query(User).filter_by(email=data["email"]).first()
            if user is None:
                user = User(business_id=business.id, permissions=[], **data)
                db.add(user)
            if user.role == "business":
                owner = user

        added = skipped = 0
        for item in SEED_PRODUCTS:
            exists = db.query(Product).filter_by(name=item["name"], business_id=business.id).first()
            if exists:
                skipped += 1
                continue
            db.add(Product(business_id=business.id, **item))
            added += 1

        db.commit()
        print(f"Catalog seeded: {added} products added, {skipped} already existed.")
        if owner is not None:
            print(f"Owner token: {create_access_token(owner.id)}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
