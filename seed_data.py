from sqlmodel import Session, select
from app.db.session import engine, create_db_and_tables
from app.models import Business, Necessity, Product, RequirementTemplate, BusinessRequirement, User

def seed_directory():
    print("Creating database and tables...")
    create_db_and_tables()

    with Session(engine) as session:
        # Check if businesses already exist to avoid duplicates
        existing = session.exec(select(Business)).all()
        if existing:
            print(f"Database already contains {len(existing)} businesses. Skipping seed.")
            return

        print("Seeding initial directory...")
        session.add(User(email="admin@example.com", name="Catalog Admin", is_superuser=True))

        bakery = Business(name="Bakery", slug="bakery", description="Neighbourhood bakery and cafe")
        salon = Business(name="Hair Salon", slug="hair-salon", description="Walk-in hair salon")
        session.add(bakery)
        session.add(salon)

        license_template = RequirementTemplate(
            name="Business License",
            description="License to operate [businessName]",
            category="Legal",
            necessity=Necessity.REQUIRED,
        )
        oven = RequirementTemplate(
            name="Commercial Oven",
            description="Oven sized for the daily output of your [businessName]",
            category="Equipment",
            necessity=Necessity.REQUIRED,
        )
        chairs = RequirementTemplate(
            name="Styling Chairs",
            description="Hydraulic chairs for each station",
            category="Furniture",
            necessity=Necessity.OPTIONAL,
        )
        session.add(license_template)
        session.add(oven)
        session.add(chairs)
        session.flush()

        session.add(Product(name="License Filing Service", price=150.0, template_id=license_template.id))
        session.add(Product(name="Convection Oven 10-Tray", price=4200.0, template_id=oven.id))
        session.add(Product(name="Deck Oven", price=6800.0, template_id=oven.id))
        session.add(Product(name="Hydraulic Styling Chair", price=320.0, template_id=chairs.id))

        session.add(BusinessRequirement(business_id=bakery.id, template_id=license_template.id, display_order=0))
        session.add(BusinessRequirement(business_id=bakery.id, template_id=oven.id, display_order=1))
        session.add(BusinessRequirement(business_id=salon.id, template_id=license_template.id, display_order=0))
        session.add(BusinessRequirement(business_id=salon.id, template_id=chairs.id, display_order=1))

        session.commit()
        print("Successfully seeded 2 businesses, 3 requirements and 4 products!")

if __name__ == "__main__":
    seed_directory()
