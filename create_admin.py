"""
create_admin.py - Quick script to create an admin account
Run this from your project root directory: python create_admin.py
Credentials come from ADMIN_EMAIL / ADMIN_PASSWORD when set.
"""

import os

from app import create_app
from extensions import db, bcrypt
from models import User

ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@gradeledger.local')
ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'admin123')

app = create_app(os.environ.get('APP_CONFIG', 'development'))

with app.app_context():
    db.create_all()

    existing_admin = db.session.execute(
        db.select(User).filter_by(email=ADMIN_EMAIL)
    ).scalar_one_or_none()

    if existing_admin:
        print("Admin account already exists!")
        print(f"   Email: {existing_admin.email}")
    else:
        admin = User(
            email=ADMIN_EMAIL,
            password=bcrypt.generate_password_hash(ADMIN_PASSWORD).decode('utf-8'),
            role='admin',
            first_name='School',
            last_name='Admin'
        )

        db.session.add(admin)
        db.session.commit()

        print("Admin account created successfully!")
        print("-" * 50)
        print(f"  Email: {ADMIN_EMAIL}")
        print("-" * 50)
        print("IMPORTANT: Change this password after first login!")

    users = db.session.execute(db.select(User)).scalars().all()
    print(f"\nTotal users in database: {len(users)}")
    for user in users:
        print(f"  - {user.email} ({user.role})")
