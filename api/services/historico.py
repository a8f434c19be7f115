# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
History recorder for grant status transitions with OpenTelemetry correlation.
"""

import logging
from datetime import datetime
from typing import List, Optional
from opentelemetry import trace

from .mongodb import MongoDBService, HISTORICO_CONCESSOES
from models.base import SYSTEM_USER
from models.entities import HistoricoConcessao

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class HistoricoConcessaoService:
    """Append-only log of grant status transitions."""

    def __init__(self, mongo_service: MongoDBService):
        """Initialize history service with MongoDB dependency."""
        self.mongo_service = mongo_service
        self.collection_name = HISTORICO_CONCESSOES
        logger.info("Grant history service initialized")

    def append(
        self,
        concessao_id: str,
        status_anterior: str,
        status_novo: str,
        alterado_por: Optional[str],
        motivo: Optional[str],
        observacoes: Optional[str] = None,
        data_alteracao: Optional[datetime] = None
    ) -> HistoricoConcessao:
        """
        Append a status transition to the grant history.

        Entries are never updated or deleted once written.

        Args:
            concessao_id: Grant ID
            status_anterior: Status before the transition
            status_novo: Status after the transition
            alterado_por: Actor ID (``SISTEMA`` when omitted)
            motivo: Transition reason
            observacoes: Additional notes
            data_alteracao: Transition timestamp, defaults to now

        Returns:
            HistoricoConcessao: The stored entry

        Raises:
            Exception: Persistence errors are propagated to the caller
        """
        with tracer.start_as_current_span("historico.append") as span:
            try:
                fields = {
                    "concessao_id": concessao_id,
                    "status_anterior": status_anterior,
                    "status_novo": status_novo,
                    "alterado_por": alterado_por or SYSTEM_USER,
                    "motivo": motivo,
                    "observacoes": observacoes
                }
                if data_alteracao:
                    fields["data_alteracao"] = data_alteracao
                entry = HistoricoConcessao(**fields)

                span.set_attributes({
                    "historico.concessao_id": concessao_id,
                    "historico.status_anterior": entry.status_anterior,
                    "historico.status_novo": entry.status_novo,
                    "historico.alterado_por": entry.alterado_por
                })

                document = entry.model_dump()
                document["_id"] = document.pop("id")
                self.mongo_service.create(self.collection_name, document)

                logger.info(
                    "Grant history entry created",
                    extra={
                        "historico_id": entry.id,
                        "concessao_id": concessao_id,
                        "status_anterior": entry.status_anterior,
                        "status_novo": entry.status_novo,
                        "alterado_por": entry.alterado_por
                    }
                )

                return entry

            except Exception as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                logger.error(
                    "Failed to create grant history entry",
                    extra={
                        "concessao_id": concessao_id,
                        "status_anterior": str(status_anterior),
                        "status_novo": str(status_novo),
                        "error": str(e)
                    },
                    exc_info=True
                )
                raise

    def listar_por_concessao(self, concessao_id: str) -> List[HistoricoConcessao]:
        """History of a grant, oldest transition first."""
        with tracer.start_as_current_span("historico.listar_por_concessao") as span:
            span.set_attribute("historico.concessao_id", concessao_id)

            documents = self.mongo_service.find(
                self.collection_name,
                {"concessao_id": concessao_id},
                sort_by="data_alteracao"
            )

            span.set_attribute("historico.count", len(documents))
            return [HistoricoConcessao(**document) for document in documents]
