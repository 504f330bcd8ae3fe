from bazar import create_app

app = create_app()
