# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Read-only access to benefit requests and benefit types.
"""

import logging
import re
from typing import Any, Dict, List, Optional
from opentelemetry import trace

from .mongodb import MongoDBService, SOLICITACOES, TIPOS_BENEFICIO
from models.entities import Solicitacao, TipoBeneficio
from models.requests import ConcessaoFilters

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def build_solicitacao_query(filtros: ConcessaoFilters) -> Dict[str, Any]:
    """Convert the request-level part of grant filters into a MongoDB query."""
    query: Dict[str, Any] = {}

    if filtros.unidade_id:
        query["unidade_id"] = filtros.unidade_id

    if filtros.tipo_beneficio_id:
        query["tipo_beneficio_id"] = filtros.tipo_beneficio_id

    if filtros.determinacao_judicial is not None:
        query["determinacao_judicial_flag"] = filtros.determinacao_judicial

    if filtros.prioridade is not None:
        query["prioridade"] = filtros.prioridade

    search = (filtros.search or "").strip()
    if search:
        termo = re.escape(search)
        condicoes = [
            {"protocolo": {"$regex": termo, "$options": "i"}},
            {"beneficiario.nome": {"$regex": termo, "$options": "i"}}
        ]
        digitos = re.sub(r"\D", "", search)
        if digitos:
            condicoes.append({"beneficiario.cpf": {"$regex": digitos}})
        query["$or"] = condicoes

    return query


class SolicitacaoService:
    """Lookup of requests and their benefit types."""

    def __init__(self, mongo_service: MongoDBService):
        self.mongo_service = mongo_service

    def find_by_id(self, solicitacao_id: str) -> Optional[Solicitacao]:
        document = self.mongo_service.find_by_id(SOLICITACOES, solicitacao_id)
        return Solicitacao(**document) if document else None

    def find_by_ids(self, solicitacao_ids: List[str]) -> Dict[str, Solicitacao]:
        """Requests keyed by ID."""
        if not solicitacao_ids:
            return {}
        documents = self.mongo_service.find(SOLICITACOES, {"_id": {"$in": list(solicitacao_ids)}})
        solicitacoes = [Solicitacao(**document) for document in documents]
        return {solicitacao.id: solicitacao for solicitacao in solicitacoes}

    def find_tipo_beneficio(self, tipo_beneficio_id: str) -> Optional[TipoBeneficio]:
        document = self.mongo_service.find_by_id(TIPOS_BENEFICIO, tipo_beneficio_id)
        return TipoBeneficio(**document) if document else None

    def find_ids(self, filtros: ConcessaoFilters) -> List[str]:
        """IDs of the requests matching the request-level grant filters."""
        with tracer.start_as_current_span("solicitacao.find_ids") as span:
            query = build_solicitacao_query(filtros)
            documents = self.mongo_service.find(SOLICITACOES, query)
            ids = [document["id"] for document in documents]

            span.set_attribute("solicitacao.matches", len(ids))
            logger.debug(f"Request filters matched {len(ids)} requests")
            return ids
