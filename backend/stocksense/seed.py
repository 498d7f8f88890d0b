# Overview: Demo data for `flask system seed`; default users, a grocery catalog and sample sales.

from __future__ import annotations

from datetime import datetime, timedelta

from .errors import ConflictError
from .extensions import db
from .models import Product, User
from .permissions import Actor, Role
from .services import products_service
from .services.auth_service import register_user

# Default password meets requirements:
# - Minimum 8 characters
# - Uppercase, lowercase, digit, special char
DEFAULT_PASSWORD = "Password123!"

# (id_number, role, full_name); the first entry is replaced by DEFAULT_ADMIN_ID_NUMBER
DEFAULT_USERS = [
    ("ADMIN001", Role.ADMIN, "System Administrator"),
    ("MGR001", Role.MANAGER, "Store Manager"),
    ("STAFF001", Role.STAFF, "Sales Staff"),
]

# (sku, name, category, quantity, price_cents, reorder_point, supplier)
DEFAULT_PRODUCTS = [
    ("BEV-001", "Bottled Water 500ml", "Beverages", 150, 1500, 50, "Philippine Bottling Co."),
    ("BEV-002", "Coca-Cola 1.5L", "Beverages", 80, 6500, 30, "Coca-Cola Beverages"),
    ("BEV-003", "Royal Tru-Orange 1L", "Beverages", 60, 4500, 25, "Coca-Cola Beverages"),
    ("BEV-004", "Red Horse Beer 1L", "Beverages", 40, 8500, 20, "San Miguel Brewery"),
    ("BEV-005", "Kopiko Coffee 30g", "Beverages", 100, 800, 40, "Mayora Indah"),
    ("BEV-006", "Alaska Evaporated Milk 370ml", "Beverages", 35, 5500, 15, "Philippine Dairy Co."),
    ("BEV-007", "C2 Green Tea 1L", "Beverages", 70, 3800, 30, "URC Refreshments"),
    ("BEV-008", "Minute Maid Orange 1L", "Beverages", 45, 7500, 20, "Coca-Cola Beverages"),
    ("BEV-009", "Red Bull Energy Drink 250ml", "Beverages", 55, 6500, 25, "TC Pharma"),
    ("SNK-001", "Piattos Cheese 85g", "Snacks", 90, 3500, 40, "Jack n Jill"),
    ("SNK-002", "Nova Barbecue 78g", "Snacks", 85, 3000, 35, "Oishi"),
    ("SNK-003", "SkyFlakes Crackers 250g", "Snacks", 70, 4200, 30, "Monde Nissin"),
    ("SNK-004", "Chippy Barbecue 110g", "Snacks", 65, 2800, 30, "Jack n Jill"),
    ("SNK-005", "Cream-O Cookies 133g", "Snacks", 75, 2500, 35, "Rebisco"),
    ("SNK-006", "Flat Tops Chocolate 100pcs", "Snacks", 50, 12000, 20, "Ricoa"),
    ("SNK-007", "Gardenia White Bread", "Snacks", 30, 5800, 15, "Gardenia Bakeries"),
    ("SNK-008", "Lady's Choice Mayonnaise 220ml", "Snacks", 40, 6800, 20, "Unilever Philippines"),
    ("CAN-001", "Ligo Sardines 155g", "Canned Goods", 120, 2500, 50, "Ligo Sardines"),
    ("CAN-002", "Argentina Corned Beef 175g", "Canned Goods", 80, 4800, 35, "CDO Foodsphere"),
    ("CAN-003", "Century Tuna Flakes 180g", "Canned Goods", 95, 4200, 40, "Century Pacific"),
    ("CAN-004", "Spam Luncheon Meat 340g", "Canned Goods", 45, 18500, 20, "Hormel Foods"),
    ("CAN-005", "CDO Liver Spread 85g", "Canned Goods", 70, 3200, 30, "CDO Foodsphere"),
    ("CAN-006", "Hunt's Pork & Beans 230g", "Canned Goods", 65, 3800, 28, "CDO Foodsphere"),
    ("CAN-007", "Del Monte Fruit Cocktail 432g", "Canned Goods", 55, 9500, 25, "Del Monte Philippines"),
    ("CAN-008", "Purefoods Vienna Sausage 130g", "Canned Goods", 75, 3500, 32, "San Miguel Purefoods"),
    ("CAN-009", "Tender Juicy Hotdog 1kg", "Canned Goods", 25, 22000, 12, "San Miguel Purefoods"),
    ("PAN-001", "Sinandomeng Rice 5kg", "Pantry", 40, 28000, 18, "NFA Rice Traders"),
    ("PAN-002", "Lucky Me Pancit Canton 60g", "Pantry", 200, 1200, 80, "Monde Nissin"),
    ("PAN-003", "UFC Banana Ketchup 320g", "Pantry", 60, 4500, 25, "NutriAsia"),
    ("PAN-004", "Silver Swan Soy Sauce 385ml", "Pantry", 70, 2800, 30, "NutriAsia"),
    ("PAN-005", "Datu Puti Vinegar 385ml", "Pantry", 65, 2200, 28, "NutriAsia"),
    ("PAN-006", "Cooking Oil 1L", "Pantry", 50, 8500, 22, "Golden Fiesta"),
    ("PAN-007", "Knorr Chicken Cube 60g", "Pantry", 80, 3200, 35, "Unilever Philippines"),
    ("PAN-008", "White Sugar 1kg", "Pantry", 55, 6500, 25, "Central Azucarera"),
    ("PAN-009", "Iodized Salt 1kg", "Pantry", 60, 2800, 28, "Patis Salt"),
    ("PAN-010", "All-Purpose Flour 1kg", "Pantry", 45, 5500, 20, "Pilmico Foods"),
    ("PAN-011", "Royal Pasta Spaghetti 900g", "Pantry", 50, 6800, 22, "Monde Nissin"),
    ("PAN-012", "Magic Sarap 50g", "Pantry", 90, 2800, 38, "Ajinomoto Philippines"),
    ("PER-001", "Safeguard Soap 135g", "Personal Care", 100, 4200, 45, "Procter & Gamble"),
    ("PER-002", "Palmolive Shampoo 340ml", "Personal Care", 60, 12500, 28, "Colgate-Palmolive"),
    ("PER-003", "Colgate Toothpaste 175g", "Personal Care", 75, 9500, 32, "Colgate-Palmolive"),
    ("PER-004", "Systema Toothbrush", "Personal Care", 85, 4500, 38, "Lion Corporation"),
    ("HEA-001", "Biogesic Paracetamol 10 tabs", "Health", 120, 3200, 50, "Unilab"),
    ("HEA-002", "Alcohol 70% 500ml", "Health", 80, 6500, 35, "Green Cross"),
    ("HOU-001", "Modess Sanitary Napkin 8s", "Household", 70, 4800, 30, "Johnson & Johnson"),
    ("HOU-002", "Joy Dishwashing Liquid 250ml", "Household", 55, 4200, 25, "Procter & Gamble"),
    ("HOU-003", "Tide Detergent Powder 120g", "Household", 60, 2800, 28, "Procter & Gamble"),
    ("HOU-004", "Eveready Battery AA 2pcs", "Household", 90, 5500, 40, "Eveready Philippines"),
    ("HOU-005", "Champion Lighter", "Household", 150, 800, 60, "Champion Plastics"),
]

# (sku, quantity, days_ago, hour, seller id_number)
SAMPLE_SALES = [
    ("BEV-002", 5, 84, 10, "STAFF001"),
    ("PAN-002", 20, 84, 11, "STAFF001"),
    ("HOU-002", 3, 79, 15, "MGR001"),
    ("SNK-001", 10, 74, 9, "STAFF001"),
    ("CAN-004", 1, 69, 12, "STAFF001"),
    ("BEV-002", 8, 58, 13, "STAFF001"),
    ("PAN-002", 30, 48, 17, "STAFF001"),
    ("SNK-001", 15, 38, 11, "MGR001"),
    ("CAN-002", 5, 37, 14, "STAFF001"),
    ("CAN-003", 12, 36, 19, "STAFF001"),
    ("BEV-002", 10, 29, 8, "STAFF001"),
    ("HOU-002", 5, 20, 14, "STAFF001"),
    ("PAN-002", 40, 10, 19, "STAFF001"),
    ("CAN-004", 2, 5, 12, "MGR001"),
    ("SNK-001", 15, 2, 15, "STAFF001"),
    ("BEV-002", 3, 1, 9, "STAFF001"),
    ("SNK-001", 8, 1, 16, "STAFF001"),
    ("BEV-001", 10, 0, 0, "STAFF001"),
]


def seed_users(admin_id_number: str, password: str = DEFAULT_PASSWORD) -> list[tuple[str, bool]]:
    """Create the default accounts. Returns (id_number, created) pairs."""
    results = []
    for index, (id_number, role, full_name) in enumerate(DEFAULT_USERS):
        if index == 0:
            id_number = admin_id_number
        if db.session.query(User).filter_by(id_number=id_number).first() is not None:
            results.append((id_number, False))
            continue
        register_user(id_number=id_number, password=password, role=role, full_name=full_name)
        results.append((id_number, True))
    return results


def seed_catalog(store, policy, actor: Actor) -> int:
    """Create DEFAULT_PRODUCTS, skipping SKUs that already exist. Returns count created."""
    created = 0
    for sku, name, category, quantity, price_cents, reorder_point, supplier in DEFAULT_PRODUCTS:
        try:
            products_service.create_product(
                store,
                policy,
                actor=actor,
                patch={
                    "sku": sku,
                    "name": name,
                    "category": category,
                    "quantity": quantity,
                    "price_cents": price_cents,
                    "reorder_point": reorder_point,
                    "supplier": supplier,
                },
            )
            created += 1
        except ConflictError:
            continue
    return created


def seed_sales(manager, *, now: datetime) -> int:
    """
    Record SAMPLE_SALES through the stock transaction manager, dated relative
    to now so the dashboards have recent history. Returns count recorded.
    """
    products = {p.sku: p.id for p in db.session.query(Product.sku, Product.id).all()}
    users = {u.id_number: u for u in db.session.query(User).all()}

    recorded = 0
    for sku, quantity, days_ago, hour, seller in SAMPLE_SALES:
        user = users.get(seller)
        if sku not in products or user is None:
            continue
        sale_date = (now - timedelta(days=days_ago)).replace(hour=hour, minute=0, second=0, microsecond=0)
        if sale_date > now:
            sale_date = now
        manager.record_sale(
            [{"product_id": products[sku], "quantity": quantity}],
            actor=Actor.of(user.id, user.role),
            sale_date=sale_date,
        )
        recorded += 1
    return recorded
