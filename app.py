"""Application entry point for the pet check-in API."""

from petcheckin.webapp import create_app

app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
