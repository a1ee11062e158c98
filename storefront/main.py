import argparse
import logging

import uvicorn

from storefront.config import settings
from storefront.db.sqlite import CatalogDB


def main() -> None:
    parser = argparse.ArgumentParser(prog="storefront", description="Run the cart or product service.")
    parser.add_argument("service", choices=["cart", "product"])
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    if args.service == "product":
        CatalogDB(settings.db_path).init_db()
        target = "storefront.web.product_api:app"
        port = args.port or settings.product_port
    else:
        target = "storefront.web.cart_api:app"
        port = args.port or settings.cart_port

    logging.getLogger(__name__).info("starting %s service on %s:%s", args.service, args.host, port)
    uvicorn.run(target, host=args.host, port=port, log_config=None)


if __name__ == "__main__":
    main()
