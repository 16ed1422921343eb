import logging


def setup_logging(level="INFO"):
    logging.basicConfig(level=level,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Chatty libraries stay at WARNING unless asked otherwise
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    for name in ('security', 'routes', 'utils'):
        logging.getLogger(name).setLevel(level)
