"""
Test data seeding.

Runs as a post-initialization hook of the SchemaBootstrapper: once the
schema exists, fills an empty clients table with generated clients.
"""

from typing import Optional

import structlog
from sqlalchemy.engine import Engine
from sqlmodel import Session

from onlinebank.services.clients import ClientService
from onlinebank.services.data_generator import ClientDataGenerator

logger = structlog.get_logger(__name__)

BATCH_SIZE = 20


class DataInitializer:
    """
    Args:
        engine: Engine to write through
        client_count: Clients to create
        clean_before: Delete existing clients first instead of skipping
        enabled: When False, initialize() is a no-op
        generator: Data source (seedable for tests)
    """

    def __init__(
        self,
        engine: Engine,
        client_count: int = 100,
        clean_before: bool = False,
        enabled: bool = True,
        generator: Optional[ClientDataGenerator] = None,
    ):
        self._engine = engine
        self.client_count = client_count
        self.clean_before = clean_before
        self.enabled = enabled
        self.generator = generator or ClientDataGenerator()

    def initialize(self) -> int:
        """Seed the table. Returns the number of clients created."""
        if not self.enabled:
            return 0

        with Session(self._engine) as session:
            service = ClientService(session)

            existing = service.count()
            if existing > 0 and not self.clean_before:
                logger.info("Clients already present, skipping test data", existing=existing)
                return 0

            if existing > 0:
                deleted = service.delete_all()
                logger.info("Existing clients removed", deleted=deleted)

            logger.info("Creating test clients", count=self.client_count)
            first_account = service.next_account_number()
            clients = self.generator.clients(self.client_count, first_account)

            created = 0
            for start in range(0, len(clients), BATCH_SIZE):
                batch = clients[start:start + BATCH_SIZE]
                session.add_all(batch)
                session.commit()
                created += len(batch)
                logger.debug("Saved test clients", saved=created)

            logger.info("Test data initialized", created=created, total=service.count())
            return created
