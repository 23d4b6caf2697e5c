#!/usr/bin/env python3
"""
Seed script to create a demo restaurant, its first administrator and menu
"""

import asyncio
import os

from sqlalchemy import select

from restaurant_core.audit.trail import AuditTrail
from restaurant_core.auth.rbac import role_table_for
from restaurant_core.auth.service import AuthService
from restaurant_core.config import get_settings
from restaurant_core.crud.actor import ActorRepository
from restaurant_core.database import build_engine, build_session_factory, init_models
from restaurant_core.models.actor import ActorTenant
from restaurant_core.models.tenant import Contact, Image, OperatingHours, Tenant
from restaurant_core.schemas.content import MenuItemCreate, MenuSectionCreate
from restaurant_core.services.data_manager import create_data_manager

ADMIN_EMAIL = os.environ.get("SEED_ADMIN_EMAIL", "owner@marios-kitchen.com")
ADMIN_PASSWORD = os.environ.get("SEED_ADMIN_PASSWORD", "Mario-Kitchen-2024!")

MENU = {
    "Appetizers": [
        {"name": "Bruschetta", "description": "Grilled bread topped with fresh tomatoes, garlic, basil, and olive oil", "price_cents": 899, "dietary_info": ["vegetarian"]},
        {"name": "Calamari Fritti", "description": "Crispy fried calamari with marinara sauce", "price_cents": 1299},
        {"name": "Garlic Bread", "description": "Toasted bread with garlic butter and herbs", "price_cents": 599, "dietary_info": ["vegetarian"]},
    ],
    "Pizza": [
        {"name": "Margherita Pizza", "description": "Fresh mozzarella, tomato sauce, and basil", "price_cents": 1499, "dietary_info": ["vegetarian"]},
        {"name": "Pepperoni Pizza", "description": "Classic pepperoni with mozzarella cheese", "price_cents": 1699},
        {"name": "Vegetable Pizza", "description": "Bell peppers, onions, mushrooms, olives, and tomatoes", "price_cents": 1699, "dietary_info": ["vegetarian"]},
    ],
    "Pasta": [
        {"name": "Spaghetti Bolognese", "description": "Spaghetti with rich meat sauce", "price_cents": 1599},
        {"name": "Fettuccine Alfredo", "description": "Fettuccine in creamy parmesan sauce", "price_cents": 1499, "dietary_info": ["vegetarian"]},
        {"name": "Lasagna", "description": "Layers of pasta, meat sauce, ricotta, and mozzarella", "price_cents": 1699},
    ],
    "Desserts": [
        {"name": "Tiramisu", "description": "Classic Italian coffee-flavored dessert", "price_cents": 899},
        {"name": "Cannoli", "description": "Crispy shells filled with sweet ricotta cream", "price_cents": 699},
    ],
}

HOURS = [
    ("11:00", "22:00"),
    ("11:00", "22:00"),
    ("11:00", "22:00"),
    ("11:00", "22:00"),
    ("11:00", "23:00"),
    ("12:00", "23:00"),
    ("12:00", "21:00"),
]


async def seed_demo_data():
    """Seed demo data for development"""
    settings = get_settings()
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    audit = AuditTrail(session_factory)

    # Create tables
    await init_models(engine)

    async with session_factory() as db:
        # Check if demo tenant already exists
        result = await db.execute(select(Tenant).where(Tenant.slug == "marios-kitchen"))
        if result.scalar_one_or_none():
            print("Demo data already exists. Skipping...")
            await engine.dispose()
            return

        print("Creating demo tenant...")

        tenant = Tenant(name="Mario's Italian Kitchen", slug="marios-kitchen", timezone="America/New_York")
        db.add(tenant)
        await db.flush()

        for day, (open_time, close_time) in enumerate(HOURS):
            db.add(OperatingHours(tenant_id=tenant.id, day_of_week=day, open_time=open_time, close_time=close_time))

        db.add(Contact(tenant_id=tenant.id, type="phone", value="+15551234567", label="Reservations"))
        db.add(Contact(tenant_id=tenant.id, type="email", value="hello@marios-kitchen.com"))
        db.add(Contact(tenant_id=tenant.id, type="address", value="123 Main Street, New York, NY 10001"))
        db.add(Image(tenant_id=tenant.id, url="/images/hero.jpg", alt="Dining room", category="hero", sort_order=10))
        await db.commit()

        print(f"Created tenant: {tenant.name} (ID: {tenant.id})")

        # First administrator
        auth = AuthService.for_session(db, audit, settings=settings)
        registered = await auth.register(
            ADMIN_EMAIL,
            ADMIN_PASSWORD,
            name="Mario Rossi",
            role=role_table_for(settings.role_model).top_role,
        )
        if not registered.success:
            print(f"Could not create administrator: {registered.error.message} {registered.error.details or ''}")
            await engine.dispose()
            return

        admin = await ActorRepository(db).get_by_id(registered.data.id)
        admin.tenants.append(ActorTenant(tenant_id=tenant.id))
        await db.commit()

        print("Creating menu...")

        # Content goes through the audited path so the demo has history
        manager = create_data_manager(db, audit, admin, tenant.id, user_agent="seed_demo")
        item_count = 0
        for section_name, items in MENU.items():
            section = await manager.create_menu_section(MenuSectionCreate(name=section_name))
            for item_data in items:
                await manager.create_menu_item(MenuItemCreate(section_id=section.id, **item_data))
                item_count += 1

    await engine.dispose()

    print(f"""
Demo data created successfully!

Tenant: Mario's Italian Kitchen
  ID: {tenant.id}

Administrator:
  Email: {ADMIN_EMAIL}
  Password: set via SEED_ADMIN_PASSWORD

Menu: {len(MENU)} sections, {item_count} items created
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
