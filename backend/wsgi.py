from venuebook import create_app

app = create_app()
