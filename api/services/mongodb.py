# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and versioned updates.
"""

import os
import logging
from typing import List, Dict, Optional
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)

from models.base import SYSTEM_USER, utcnow
from utils.errors import ConflictException

logger = logging.getLogger(__name__)

# Collection names
CONCESSOES = "concessoes"
HISTORICO_CONCESSOES = "historico_concessoes"
PAGAMENTOS = "pagamentos"
SOLICITACOES = "solicitacoes"
TIPOS_BENEFICIO = "tipos_beneficio"


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Dict], total: int, limit: int, offset: int):
        self.items = items
        self.total = total
        self.limit = limit
        self.offset = offset
        self.has_next = offset + len(items) < total
        self.has_prev = offset > 0


def _from_document(document: Optional[Dict]) -> Optional[Dict]:
    """Expose the MongoDB ``_id`` as ``id``."""
    if document and "_id" in document:
        document["id"] = str(document.pop("_id"))
    return document


class MongoDBService:
    """MongoDB service with connection pooling and optimistic concurrency."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/concessoes_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'concessoes_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True,
                    tz_aware=True
                )
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def _touch(self, updates: Dict, user_id: Optional[str]) -> Dict:
        """Stamp update metadata onto a ``$set`` payload."""
        updates = dict(updates)
        updates["updated_at"] = utcnow()
        updates["updated_by"] = user_id or SYSTEM_USER
        return updates

    # CRUD Operations

    def create(self, collection: str, document: Dict) -> str:
        """Insert a document keyed by its ``_id``."""
        try:
            collection_obj = self.get_collection(collection)
            result = collection_obj.insert_one(document)

            logger.info(f"Created document in {collection}: {result.inserted_id}")
            return str(result.inserted_id)

        except DuplicateKeyError as e:
            logger.error(f"Duplicate key error in {collection}: {e}")
            raise ConflictException(f"Document with this identifier already exists in {collection}")
        except Exception as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise

    def find_by_id(self, collection: str, doc_id: str) -> Optional[Dict]:
        """Find a single document by ID."""
        return self.find_one(collection, {"_id": doc_id})

    def find_one(self, collection: str, filters: Dict) -> Optional[Dict]:
        """Find the first document matching the filters."""
        try:
            document = self.get_collection(collection).find_one(filters)
            if document is None:
                logger.debug(f"No document in {collection} matching {filters}")
            return _from_document(document)

        except Exception as e:
            logger.error(f"Failed to find document in {collection}: {e}")
            raise

    def find(self, collection: str, filters: Dict = None, sort_by: str = None,
             sort_order: int = ASCENDING, skip: int = 0, limit: int = 0) -> List[Dict]:
        """Find documents with optional sorting and windowing."""
        try:
            cursor = self.get_collection(collection).find(filters or {})
            if sort_by:
                cursor = cursor.sort(sort_by, sort_order)
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)

            documents = [_from_document(doc) for doc in cursor]

            logger.debug(f"Found {len(documents)} documents in {collection}")
            return documents

        except Exception as e:
            logger.error(f"Failed to find documents in {collection}: {e}")
            raise

    def update(self, collection: str, doc_id: str, updates: Dict, user_id: Optional[str] = None) -> bool:
        """Update a document by ID without version checking."""
        try:
            collection_obj = self.get_collection(collection)
            result = collection_obj.update_one({"_id": doc_id}, {"$set": self._touch(updates, user_id)})

            if result.matched_count > 0:
                logger.info(f"Updated document {doc_id} in {collection}")
                return True
            else:
                logger.warning(f"No document updated for {doc_id} in {collection}")
                return False

        except Exception as e:
            logger.error(f"Failed to update document {doc_id} in {collection}: {e}")
            raise

    def update_versioned(self, collection: str, doc_id: str, expected_version: int,
                         updates: Dict, user_id: Optional[str] = None) -> bool:
        """
        Compare-and-set update guarded by the document ``version``.

        The update applies only while the stored version still equals
        ``expected_version``; the version is then incremented atomically.

        Returns:
            True if the document was updated, False if the version moved on
            or the document no longer exists
        """
        try:
            collection_obj = self.get_collection(collection)
            result = collection_obj.update_one(
                {"_id": doc_id, "version": expected_version},
                {"$set": self._touch(updates, user_id), "$inc": {"version": 1}}
            )

            if result.matched_count > 0:
                logger.info(
                    f"Updated document {doc_id} in {collection}",
                    extra={"version": expected_version + 1}
                )
                return True

            logger.warning(
                f"Version check failed for {doc_id} in {collection}",
                extra={"expected_version": expected_version}
            )
            return False

        except Exception as e:
            logger.error(f"Failed to update document {doc_id} in {collection}: {e}")
            raise

    def paginate(self, collection: str, filters: Dict = None, limit: int = 100, offset: int = 0,
                 sort_by: str = "created_at", sort_order: int = DESCENDING) -> PaginationResult:
        """Paginate documents with sorting and filtering."""
        try:
            query = filters or {}
            collection_obj = self.get_collection(collection)

            total = collection_obj.count_documents(query)

            cursor = collection_obj.find(query).sort(sort_by, sort_order).skip(offset).limit(limit)
            documents = [_from_document(doc) for doc in cursor]

            logger.debug(f"Paginated {len(documents)} documents from {collection} (offset {offset})")
            return PaginationResult(documents, total, limit, offset)

        except Exception as e:
            logger.error(f"Failed to paginate documents in {collection}: {e}")
            raise

    def count(self, collection: str, filters: Dict = None) -> int:
        """Count documents with optional filters."""
        try:
            count = self.get_collection(collection).count_documents(filters or {})
            logger.debug(f"Counted {count} documents in {collection}")
            return count

        except Exception as e:
            logger.error(f"Failed to count documents in {collection}: {e}")
            raise

    # Index Management

    def create_indexes(self) -> None:
        """Create performance indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            # Grants
            concessoes = self.get_collection(CONCESSOES)
            concessoes.create_index([("solicitacao_id", ASCENDING), ("created_at", ASCENDING)])
            concessoes.create_index([("status", ASCENDING), ("created_at", DESCENDING)])
            concessoes.create_index([("data_inicio", DESCENDING)])
            concessoes.create_index("concessao_anterior_id")

            # Grant history
            historico = self.get_collection(HISTORICO_CONCESSOES)
            historico.create_index([("concessao_id", ASCENDING), ("data_alteracao", DESCENDING)])

            # Installments
            pagamentos = self.get_collection(PAGAMENTOS)
            pagamentos.create_index([("concessao_id", ASCENDING), ("numero_parcela", ASCENDING)], unique=True)
            pagamentos.create_index([("status", ASCENDING), ("data_prevista_liberacao", ASCENDING)])

            # Requests
            solicitacoes = self.get_collection(SOLICITACOES)
            solicitacoes.create_index("protocolo", unique=True)
            solicitacoes.create_index([("unidade_id", ASCENDING), ("tipo_beneficio_id", ASCENDING)])
            solicitacoes.create_index("beneficiario.cpf")

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
