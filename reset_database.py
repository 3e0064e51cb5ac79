from app import create_app
from extensions import db


def reset_database():
    """
    Drops all tables and recreates them based on the current models.
    USE WITH CAUTION IN DEVELOPMENT ONLY. This will delete all conversations and messages.
    """
    app = create_app()
    with app.app_context():
        print("--- WARNING: This will delete ALL data in the database. ---")
        confirm = input("This is a destructive operation. Type 'reset' to continue: ")
        if confirm.lower() != 'reset':
            print("Aborted.")
            return

        print("Dropping all tables...")
        db.drop_all()
        print("[OK] All tables dropped.")

        print("Recreating all tables from models...")
        db.create_all()
        print("[OK] All tables recreated successfully. You can now restart the server.")


if __name__ == "__main__":
    reset_database()
