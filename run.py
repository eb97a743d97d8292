import os
from dotenv import load_dotenv

# Load environment variables before the config class reads them
load_dotenv()

from vendorvault import create_app, db
from vendorvault.enums import UserRole
from vendorvault.models.user import User
from vendorvault.models.wallet import Wallet
from vendorvault.services.payment_service import PaymentService
from vendorvault.services.scheduler_service import DeliveryScheduler

# Create app instance
app = create_app()


@app.cli.command()
def init_db():
    """Initialize database"""
    db.create_all()
    print('Database initialized successfully!')


@app.cli.command()
def drop_db():
    """Drop all tables"""
    if input('Are you sure you want to drop all tables? (yes/no): ') == 'yes':
        db.drop_all()
        print('Database dropped successfully!')
    else:
        print('Operation cancelled')


@app.cli.command()
def create_admin():
    """Create admin user"""
    email = input('Admin email: ')
    username = input('Admin username: ')
    password = input('Admin password: ')

    if User.query.filter_by(email=email).first():
        print('Email already exists')
        return

    if User.query.filter_by(username=username).first():
        print('Username already exists')
        return

    admin = User(
        email=email,
        username=username,
        full_name='System Administrator',
        role=UserRole.ADMIN,
        is_active=True
    )
    admin.set_password(password)

    db.session.add(admin)
    db.session.flush()
    db.session.add(Wallet(user_id=admin.id))
    db.session.commit()

    print('Admin user created successfully!')


@app.cli.command("process-delayed")
def process_delayed():
    """Release delayed orders and expire stale payments (run from system cron)"""
    result = DeliveryScheduler.process_delayed()
    result['expired'] = PaymentService.expire_stale_payments()
    print(f"processed={result['processed']} failed={result['failed']} expired={result['expired']}")


if __name__ == '__main__':
    app.run(
        host=os.getenv('HOST', '0.0.0.0'),
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('DEBUG', 'True') == 'True'
    )
