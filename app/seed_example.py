from decimal import Decimal

from sqlalchemy import select

from app.db import SessionLocal, engine
from app.models import Admin, Base, Customer, MenuItem
from app.security.passwords import hash_password

MENU = [
    ('Pollo entero', Decimal('95.00'), True),
    ('Medio pollo', Decimal('50.00'), True),
    ('Cuarto de pollo', Decimal('27.50'), True),
    ('Porcion de papas', Decimal('10.00'), True),
    ('Refresco 2L', Decimal('15.00'), False),
]


def seed() -> None:
    Base.metadata.create_all(engine)
    with SessionLocal() as db:
        admin = db.execute(select(Admin).where(Admin.username == 'admin')).scalar_one_or_none()
        if not admin:
            db.add(
                Admin(
                    username='admin',
                    password_hash=hash_password('admin123'),
                    first_names='Emy',
                    last_names='Admin',
                )
            )

        customer = db.execute(select(Customer).where(Customer.username == 'cliente')).scalar_one_or_none()
        if not customer:
            db.add(
                Customer(
                    username='cliente',
                    password_hash=hash_password('cliente123'),
                    first_names='Ana',
                    last_names='Quispe',
                    phone='70000000',
                )
            )

        existing = set(db.execute(select(MenuItem.name)).scalars().all())
        for name, price, available in MENU:
            if name not in existing:
                db.add(MenuItem(name=name, price=price, available=available))

        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
