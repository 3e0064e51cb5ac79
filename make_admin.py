from app import create_app
from extensions import db
from models.user import User, ROLE_ADMIN
from routes.auth_routes import issue_token


def make_admin():
    """Create an operator account, or promote an existing user, and print a bearer token."""
    app = create_app()
    with app.app_context():
        print("\n--- Add New Admin ---\n")
        email = input("Enter Admin Email: ").strip()
        if not email:
            print("Error: Email is required.")
            return

        user = User.query.filter(User.email.ilike(email)).first()
        if user:
            user.role = ROLE_ADMIN
            print(f"User {email} has been promoted to Admin.")
        else:
            name = input("Enter Admin Name: ").strip()
            if not name:
                print("Error: Name is required for a new admin.")
                return
            user = User(name=name, email=email, role=ROLE_ADMIN)
            db.session.add(user)
            print(f"Admin {name} created.")
        db.session.commit()

        print(f"\nBearer token (valid {app.config['TOKEN_TTL_HOURS']}h):\n{issue_token(user)}")


if __name__ == "__main__":
    make_admin()
