from datetime import datetime, timedelta, timezone

from sqlmodel import Session, select

from shoppers.db.session import engine, create_db_and_tables
from shoppers.models.coupon import Coupon
from shoppers.models.product import Product
from shoppers.models.user import User, UserRole
from shoppers.services.auth import AuthService
from shoppers.services.category import CategoryService
from shoppers.services.product import ProductService

CATEGORY_TREE = {
    "Men": {"Topwear": ["T-Shirts", "Shirts"], "Bottomwear": ["Jeans"]},
    "Women": {"Western Wear": ["Dresses", "Tops"]},
}

# (name, brand, leaf category path, [(color, size, price, original price, stock)])
PRODUCTS = [
    ("Classic Crew Tee", "Northline", ("Men", "Topwear", "T-Shirts"),
     [("Black", "M", 499, 799, 40), ("Black", "L", 499, 799, 25), ("White", "M", 449, 799, 8)]),
    ("Oxford Button-Down", "Northline", ("Men", "Topwear", "Shirts"),
     [("Blue", "M", 1299, 1999, 15), ("Blue", "L", 1299, 1999, 4)]),
    ("Slim Fit Denim", "Indigo Co", ("Men", "Bottomwear", "Jeans"),
     [("Indigo", "32", 1799, 2499, 30)]),
    ("Floral Wrap Dress", "Saanvi", ("Women", "Western Wear", "Dresses"),
     [("Red", "S", 1599, 2299, 12), ("Red", "M", 1599, 2299, 0)]),
    ("Ribbed Crop Top", "Saanvi", ("Women", "Western Wear", "Tops"),
     [("Olive", "S", 599, 899, 50)]),
]


def seed_categories(session: Session) -> dict:
    service = CategoryService(session)
    created = {}
    for top, subs in CATEGORY_TREE.items():
        parent = service.create_category(top)
        created[(top,)] = parent
        for sub, leaves in subs.items():
            child = service.create_category(sub, parent_id=parent.id)
            created[(top, sub)] = child
            for leaf in leaves:
                created[(top, sub, leaf)] = service.create_category(leaf, parent_id=child.id)
    return created


def seed_products(session: Session, categories: dict):
    service = ProductService(session)
    for name, brand, path, variants in PRODUCTS:
        prefix = "".join(word[0] for word in name.split()).upper()
        service.create_product(
            {"name": name, "brand": brand, "category_id": categories[path].id, "is_featured": path[0] == "Women"},
            [
                {"sku": f"{prefix}-{color[:3].upper()}-{size}", "color": color, "size": size,
                 "price": price, "original_price": original, "stock": stock}
                for color, size, price, original, stock in variants
            ],
        )


def seed_admin(session: Session, email: str = "admin@shoppers.local", password: str = "admin123") -> User:
    auth = AuthService(session)
    admin = User(
        email=email,
        name="Store Admin",
        password_hash=auth.get_password_hash(password),
        role=UserRole.SUPER_ADMIN.value,
        is_verified=True,
    )
    session.add(admin)
    session.commit()
    session.refresh(admin)
    return admin


def seed_coupons(session: Session):
    now = datetime.now(timezone.utc)
    session.add(Coupon(
        code="WELCOME10", description="10% off your first order", discount_type="percentage",
        discount_value=10, max_discount_amount=300, usage_limit=1000,
        valid_from=now, valid_until=now + timedelta(days=90),
    ))
    session.add(Coupon(
        code="FLAT200", description="Flat 200 off above 1500", discount_type="fixed",
        discount_value=200, min_order_amount=1500, usage_limit=500,
        valid_from=now, valid_until=now + timedelta(days=30),
    ))
    session.commit()


def seed(session: Session) -> bool:
    """Populate an empty database. Returns False when data is already present."""
    existing_products = session.exec(select(Product)).all()
    if existing_products:
        print(f"Database already contains {len(existing_products)} products. Skipping seed.")
        return False

    print("Seeding categories...")
    categories = seed_categories(session)
    print("Seeding products...")
    seed_products(session, categories)
    print("Seeding admin user and coupons...")
    seed_admin(session)
    seed_coupons(session)
    print(f"Successfully seeded {len(PRODUCTS)} products in {len(categories)} categories!")
    return True


if __name__ == "__main__":
    print("Creating database and tables...")
    create_db_and_tables()
    with Session(engine) as session:
        seed(session)
