import sys

from relaywatch.core.config import load_settings
from relaywatch.infra.db import create_store_engine
from relaywatch.models import Base


if __name__ == "__main__":
    settings = load_settings(sys.argv[1])
    Base.metadata.create_all(bind=create_store_engine(settings))
    print("database schema initialized")
