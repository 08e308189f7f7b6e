from henhouse import create_app

app = create_app()
