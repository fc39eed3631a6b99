# backend/database/demo_data.py
"""Demo data for local runs: one donor, one buyer, a verified charity with volunteers, couriers and listings."""

from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import sessionmaker

from database.session import SessionLocal, engine, init_db
from models.charity_model import CharityOrganization, OrganizationVolunteer
from models.courier_model import IndependentCourier
from models.listing_model import FoodListing
from models.user_model import User


def create_demo_data(session_factory: sessionmaker = SessionLocal, bind=None) -> bool:
    """Seed the demo world. Returns False when data already exists."""

    init_db(bind=bind or engine)

    db = session_factory()
    try:
        if db.query(User).first():
            print("Demo data already exists")
            return False

        users = [
            User(username="dana_bakery", email="dana@example.com", phone="050-1111111", role="DONOR_SELLER"),
            User(username="yossi", email="yossi@example.com", phone="050-2222222", role="BUYER"),
            User(username="food_for_all", email="ffa@example.com", phone="03-3333333", role="CHARITY_ORG"),
            User(username="fast_rider", email="rider@example.com", phone="050-4444444", role="INDEP_DELIVERY"),
            User(username="noa", email="noa@example.com", phone="050-5555555", role="ORG_VOLUNTEER"),
            User(username="admin", email="admin@example.com", role="ADMIN"),
        ]
        db.add_all(users)
        db.flush()
        donor, _, charity_user, courier_user, volunteer_user, _ = users

        charity = CharityOrganization(
            user_id=charity_user.id,
            organization_name="Food For All",
            is_doc_verified=True,
            address="Tel Aviv, Herzl 5",
        )
        db.add(charity)
        db.flush()

        db.add(OrganizationVolunteer(
            user_id=volunteer_user.id,
            organization_id=charity.id,
            volunteer_name="Noa",
            contact_phone=volunteer_user.phone,
        ))
        db.add(IndependentCourier(
            user_id=courier_user.id,
            full_name="Fast Rider",
            is_id_verified=True,
            operating_areas=["Tel Aviv", "Ramat Gan", "Givatayim"],
            rating=4.8,
        ))

        now = datetime.now(timezone.utc)
        db.add_all([
            FoodListing(
                owner_id=donor.id,
                title="Shakshuka trays",
                description="Fresh shakshuka, serves 4",
                food_type="Cooked meal",
                cooked_at=now - timedelta(hours=1),
                pickup_window_start=now,
                pickup_window_end=now + timedelta(hours=6),
                pickup_location="Tel Aviv, Dizengoff 10",
                is_donation=False,
                price=60.0,
                quantity="4 trays",
                status="ACTIVE",
                created_at=now,
            ),
            FoodListing(
                owner_id=donor.id,
                title="Bread loaves",
                description="Day-old sourdough",
                food_type="Bakery",
                cooked_at=now - timedelta(hours=12),
                pickup_window_start=now,
                pickup_window_end=now + timedelta(hours=10),
                pickup_location="Tel Aviv, Allenby 40",
                is_donation=True,
                quantity="12 loaves",
                dietary_info="Vegan",
                status="ACTIVE",
                created_at=now,
            ),
        ])

        db.commit()
        print(f"Demo data created: {len(users)} users, 2 listings")
        return True
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    create_demo_data()
