import os

from partyfud.app.factory import create_app

app = create_app()

if __name__ == "__main__":
    app.run(
        host=app.config.get("APP_HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", app.config.get("APP_PORT", 8080))),
        debug=True,
    )
