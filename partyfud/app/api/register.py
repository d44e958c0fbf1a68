from flask import Flask

from partyfud.modules.auth.routes import bp as auth_bp
from partyfud.modules.catalog.routes import bp as catalog_bp
from partyfud.modules.packages.routes import bp as packages_bp
from partyfud.modules.cart.routes import bp as cart_bp
from partyfud.modules.checkout.routes import bp as checkout_bp
from partyfud.modules.orders.routes import bp as orders_bp
from partyfud.modules.proposals.routes import bp as proposals_bp
from partyfud.modules.caterer.routes import bp as caterer_bp
from partyfud.modules.admin.routes import bp as admin_bp


def register_api_blueprints(app: Flask) -> None:
    for bp in (auth_bp, packages_bp, catalog_bp, cart_bp, checkout_bp, orders_bp, proposals_bp, caterer_bp, admin_bp):
        app.register_blueprint(bp, url_prefix="/api")

    @app.get("/api")
    def api_index():
        return {
            "name": "PartyFud API",
            "version": "0.1.0",
            "endpoints": {
                "auth": ["/auth/signup", "/auth/login", "/auth/logout", "/auth/me", "/auth/profile", "/auth/caterer-info"],
                "catalog": [
                    "/user/caterers", "/user/caterers/<id>", "/user/caterers/<id>/dishes",
                    "/user/packages", "/user/packages/all", "/user/dishes", "/user/dishes/<id>",
                    "/user/occasions", "/user/metadata/cuisine-types", "/user/metadata/categories",
                    "/user/metadata/subcategories",
                ],
                "packages": [
                    "/user/packages/my-packages", "/user/packages/<id>", "/user/packages/<id>/quote",
                    "/user/packages/<id>/selection/toggle",
                ],
                "cart": [
                    "/user/cart/items", "/user/cart/items/<id>", "/user/cart/add", "/user/cart/summary",
                    "/user/cart/event-details",
                ],
                "checkout": [
                    "/user/checkout", "/user/checkout/details", "/user/checkout/guests", "/user/checkout/next",
                    "/user/checkout/back", "/user/checkout/payment-method", "/user/checkout/place-order",
                ],
                "orders": ["/user/orders", "/user/orders/<id>"],
                "proposals": ["/user/proposals", "/user/proposals/<id>"],
                "caterer": [
                    "/caterer/onboarding/status", "/caterer/onboarding/draft", "/caterer/onboarding/submit",
                    "/caterer/dishes", "/caterer/packages", "/caterer/packages/items", "/caterer/dashboard",
                    "/caterer/proposals", "/caterer/orders",
                ],
                "admin": ["/admin", "/admin/catererinfo", "/admin/catererinfo/<id>"],
            },
        }, 200
