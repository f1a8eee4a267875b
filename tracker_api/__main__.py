import logging

import uvicorn

from . import config


def main() -> None:
    logging.basicConfig(
        level=config.log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("tracker_api.server:app", host=config.listen_host(), port=config.listen_port())


if __name__ == "__main__":
    main()
