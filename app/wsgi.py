from app.adminpanel import create_app

app = create_app()
