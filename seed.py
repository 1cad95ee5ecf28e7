from orderdesk import create_app, db
from orderdesk.seed import seed_demo_data

app = create_app()

with app.app_context():
    db.create_all()  # Creates tables if they don't exist

    if seed_demo_data():
        print("Database seeded! Admin user is admin@homelia.in")
    else:
        print("Database already contains data.")
