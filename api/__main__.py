"""
Development server: `python -m api`.
In production serve `api:create_app()` from a WSGI server, e.g.
`gunicorn -w 4 "api:create_app()"`.
"""
from . import create_app

# APP_ENV selects the configuration class (handled in get_config())
app = create_app()

if __name__ == "__main__":
    app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"])
