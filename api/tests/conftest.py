# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.

Service tests run against an in-memory double of MongoDBService: a
MagicMock restricted to the real service's interface whose methods are
backed by plain dict collections.
"""

import copy
import os
import re
from collections import defaultdict
from datetime import timedelta
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from app import create_services
from models.base import utcnow
from models.entities import Beneficiario, Concessao, Pagamento, Solicitacao, TipoBeneficio
from models.enums import StatusConcessao, StatusPagamento, Periodicidade
from services.mongodb import (
    MongoDBService,
    PaginationResult,
    CONCESSOES,
    PAGAMENTOS,
    SOLICITACOES,
    TIPOS_BENEFICIO
)
from utils.errors import ConflictException

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['MONGODB_DATABASE'] = 'concessoes_test'


def _get_path(document: Dict[str, Any], path: str) -> Any:
    value = document
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    """Evaluate the subset of MongoDB query operators the services use."""
    for key, condition in query.items():
        if key == "$or":
            if not any(_matches(document, sub) for sub in condition):
                return False
            continue

        value = _get_path(document, key)

        if isinstance(condition, dict) and any(op.startswith("$") for op in condition):
            for op, arg in condition.items():
                if op == "$in" and value not in arg:
                    return False
                if op == "$gte" and (value is None or value < arg):
                    return False
                if op == "$lte" and (value is None or value > arg):
                    return False
                if op == "$regex":
                    flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                    if value is None or not re.search(arg, str(value), flags):
                        return False
        elif value != condition:
            return False

    return True


class InMemoryMongo:
    """Dict-backed storage mirroring the MongoDBService interface."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)

    @staticmethod
    def _public(document: Dict[str, Any]) -> Dict[str, Any]:
        document = copy.deepcopy(document)
        document["id"] = document.pop("_id")
        return document

    def _select(self, collection: str, filters: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            document for document in self.collections[collection].values()
            if _matches(document, filters or {})
        ]

    def create(self, collection: str, document: Dict[str, Any]) -> str:
        if document["_id"] in self.collections[collection]:
            raise ConflictException(f"Document with this identifier already exists in {collection}")
        self.collections[collection][document["_id"]] = copy.deepcopy(document)
        return str(document["_id"])

    def find_by_id(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return self.find_one(collection, {"_id": doc_id})

    def find_one(self, collection: str, filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        documents = self._select(collection, filters)
        return self._public(documents[0]) if documents else None

    def find(self, collection: str, filters: Dict = None, sort_by: str = None,
             sort_order: int = 1, skip: int = 0, limit: int = 0) -> List[Dict[str, Any]]:
        documents = self._select(collection, filters)
        if sort_by:
            documents.sort(key=lambda doc: doc.get(sort_by), reverse=sort_order < 0)
        documents = documents[skip:]
        if limit:
            documents = documents[:limit]
        return [self._public(document) for document in documents]

    def count(self, collection: str, filters: Dict = None) -> int:
        return len(self._select(collection, filters))

    def paginate(self, collection: str, filters: Dict = None, limit: int = 100, offset: int = 0,
                 sort_by: str = "created_at", sort_order: int = -1) -> PaginationResult:
        total = self.count(collection, filters)
        items = self.find(collection, filters, sort_by=sort_by, sort_order=sort_order, skip=offset, limit=limit)
        return PaginationResult(items, total, limit, offset)

    def update(self, collection: str, doc_id: str, updates: Dict, user_id: Optional[str] = None) -> bool:
        document = self.collections[collection].get(doc_id)
        if document is None:
            return False
        document.update(copy.deepcopy(updates))
        document["updated_at"] = utcnow()
        document["updated_by"] = user_id or "SISTEMA"
        return True

    def update_versioned(self, collection: str, doc_id: str, expected_version: int,
                         updates: Dict, user_id: Optional[str] = None) -> bool:
        document = self.collections[collection].get(doc_id)
        if document is None or document.get("version") != expected_version:
            return False
        self.update(collection, doc_id, updates, user_id)
        document["version"] = expected_version + 1
        return True

    def insert(self, collection: str, entity) -> None:
        """Seed an entity directly, bypassing the services."""
        self.collections[collection][entity.id] = entity.to_document()

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return self.collections[collection].get(doc_id)


@pytest.fixture
def store():
    """Backing storage of the MongoDB double."""
    return InMemoryMongo()


@pytest.fixture
def mongo_service(store):
    """MagicMock limited to MongoDBService's interface, backed by ``store``."""
    service = MagicMock(spec=MongoDBService)
    for name in ("create", "find_by_id", "find_one", "find", "count", "paginate", "update", "update_versioned"):
        getattr(service, name).side_effect = getattr(store, name)
    return service


@pytest.fixture
def services(mongo_service):
    """Fully wired service container over the MongoDB double."""
    return create_services(
        config={'ENVIRONMENT': 'test', 'MONGODB_DATABASE': 'concessoes_test'},
        mongodb_service=mongo_service,
        init_observability=False
    )


@pytest.fixture
def concessao_service(services):
    return services.concessao_service


@pytest.fixture
def pagamento_service(services):
    return services.pagamento_service


@pytest.fixture
def tipo_beneficio(store):
    """Monthly benefit type paid in three installments."""
    tipo = TipoBeneficio(
        nome="Auxílio Aluguel",
        codigo="ALUGUEL",
        periodicidade=Periodicidade.MENSAL,
        valor=600.0,
        especificacoes={"duracao_maxima_meses": 6, "quantidade_parcelas": 3}
    )
    store.insert(TIPOS_BENEFICIO, tipo)
    return tipo


@pytest.fixture
def make_solicitacao(store, tipo_beneficio):
    """Factory seeding a benefit request."""
    counter = {"n": 0}

    def _make(**overrides) -> Solicitacao:
        counter["n"] += 1
        fields = {
            "protocolo": f"SOL2026{counter['n']:05d}",
            "beneficiario": Beneficiario(id=f"cid-{counter['n']}", nome="Maria da Silva", cpf="123.456.789-09"),
            "tipo_beneficio_id": tipo_beneficio.id,
            "unidade_id": "unidade-centro",
            "tecnico_id": "tecnico-1",
            "prioridade": 2
        }
        fields.update(overrides)
        solicitacao = Solicitacao(**fields)
        store.insert(SOLICITACOES, solicitacao)
        return solicitacao

    return _make


@pytest.fixture
def make_concessao(store, make_solicitacao):
    """Factory seeding a grant in a given status."""

    def _make(status=StatusConcessao.ATIVO, solicitacao: Optional[Solicitacao] = None, **overrides) -> Concessao:
        solicitacao = solicitacao or make_solicitacao()
        fields = {
            "solicitacao_id": solicitacao.id,
            "status": status,
            "data_inicio": utcnow() - timedelta(days=90),
            "ordem_prioridade": solicitacao.prioridade or 3
        }
        fields.update(overrides)
        concessao = Concessao(**fields)
        store.insert(CONCESSOES, concessao)
        return concessao

    return _make


@pytest.fixture
def make_pagamentos(store):
    """Factory seeding one installment per given status."""

    def _make(concessao: Concessao, statuses: List[StatusPagamento]) -> List[Pagamento]:
        pagamentos = []
        for numero, status in enumerate(statuses, start=1):
            pagamento = Pagamento(
                concessao_id=concessao.id,
                solicitacao_id=concessao.solicitacao_id,
                numero_parcela=numero,
                total_parcelas=len(statuses),
                valor=600.0,
                status=status
            )
            store.insert(PAGAMENTOS, pagamento)
            pagamentos.append(pagamento)
        return pagamentos

    return _make
