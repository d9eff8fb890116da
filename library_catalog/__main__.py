from library_catalog.main import app

app()
