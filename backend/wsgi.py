from hortifruti import create_app

app = create_app()
