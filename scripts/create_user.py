import argparse
import getpass

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.auth import hash_password
from app.config import get_settings
from app.models import User


def main():
    parser = argparse.ArgumentParser(description="Add a new user to the expense tracker")
    parser.add_argument("--name", required=True, help="Display name")
    parser.add_argument("--email", required=True, help="Login email (stored lower-case)")
    parser.add_argument("--password", help="Password (prompted for if omitted)")

    args = parser.parse_args()
    password = args.password or getpass.getpass("Password: ")
    if len(password) < 6:
        print("Error: password must be at least 6 characters.")
        return

    settings = get_settings()
    engine = create_engine(settings.database_url)
    Session = sessionmaker(bind=engine)
    session = Session()

    try:
        email = args.email.lower()
        if session.query(User).filter(User.email == email).first():
            print(f"User with email '{email}' already exists.")
            return

        user = User(name=args.name, email=email, password_hash=hash_password(password))
        session.add(user)
        session.commit()

        print("\n✅ User Created Successfully!")
        print("--------------------------------")
        print(f"ID:    {user.id}")
        print(f"Name:  {user.name}")
        print(f"Email: {user.email}")
        print("--------------------------------")
    except Exception as e:
        print(f"Error: {e}")
        session.rollback()
    finally:
        session.close()


if __name__ == "__main__":
    main()
