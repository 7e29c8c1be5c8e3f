from fairy import create_app

app = create_app()
