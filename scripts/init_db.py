from app.config import settings
from app.db.engine import get_engine, seed_admin
from app.db.schema import metadata

def main():
    engine = get_engine()
    metadata.drop_all(engine)
    metadata.create_all(engine)
    seed_admin(engine, settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)
    print("DB schema created.")

if __name__ == "__main__":
    main()
