# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Installment (pagamento) generation and status management for grants.
"""

import logging
from typing import Any, Callable, Dict, List, Optional
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .mongodb import MongoDBService, PAGAMENTOS
from domain.concessoes import calcular_datas_parcelas, calcular_quantidade_parcelas
from models.base import SYSTEM_USER, utcnow
from models.entities import Concessao, Pagamento, Solicitacao
from models.enums import StatusPagamento
from utils.errors import ConflictException, NotFoundException, ValidationException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# (pagamento, novo_status, usuario_id)
StatusListener = Callable[[Pagamento, StatusPagamento, Optional[str]], None]


class PagamentoService:
    """Service generating and tracking grant installments."""

    def __init__(self, mongo_service: MongoDBService, solicitacao_service=None):
        self.mongo_service = mongo_service
        self.solicitacao_service = solicitacao_service
        self.collection_name = PAGAMENTOS
        self._listeners: List[StatusListener] = []

    def registrar_listener(self, listener: StatusListener) -> None:
        """Register a callback invoked after every installment status change."""
        self._listeners.append(listener)

    def gerar_pagamentos_para_concessao(
        self,
        concessao: Concessao,
        solicitacao: Solicitacao,
        usuario_id: Optional[str],
        quantidade_parcelas: Optional[int] = None
    ) -> List[Pagamento]:
        """
        Generate the pending installments of a grant.

        Args:
            concessao: Grant receiving the installments
            solicitacao: Originating request (provides the benefit type)
            usuario_id: Actor ID
            quantidade_parcelas: Explicit installment count, overriding the
                benefit type specification

        Returns:
            List of created installments, ordered by installment number
        """
        with tracer.start_as_current_span("pagamento.gerar_pagamentos_para_concessao") as span:
            span.set_attributes({
                "pagamento.concessao_id": concessao.id,
                "pagamento.solicitacao_id": solicitacao.id
            })

            try:
                tipo_beneficio = None
                if self.solicitacao_service and solicitacao.tipo_beneficio_id:
                    tipo_beneficio = self.solicitacao_service.find_tipo_beneficio(solicitacao.tipo_beneficio_id)

                quantidade = calcular_quantidade_parcelas(tipo_beneficio, quantidade_parcelas)
                periodicidade = tipo_beneficio.periodicidade if tipo_beneficio else "mensal"
                valor = tipo_beneficio.valor if tipo_beneficio else 0.0
                datas = calcular_datas_parcelas(concessao.data_inicio, periodicidade, quantidade)

                pagamentos = []
                for numero, data_prevista in enumerate(datas, start=1):
                    pagamento = Pagamento(
                        concessao_id=concessao.id,
                        solicitacao_id=solicitacao.id,
                        numero_parcela=numero,
                        total_parcelas=quantidade,
                        valor=valor,
                        data_prevista_liberacao=data_prevista,
                        created_by=usuario_id or SYSTEM_USER,
                        updated_by=usuario_id or SYSTEM_USER
                    )
                    self.mongo_service.create(self.collection_name, pagamento.to_document())
                    pagamentos.append(pagamento)

                span.set_attribute("pagamento.quantidade", quantidade)
                logger.info(
                    "Installments generated for grant",
                    extra={
                        "concessao_id": concessao.id,
                        "quantidade_parcelas": quantidade,
                        "periodicidade": str(periodicidade),
                        "usuario_id": usuario_id
                    }
                )
                return pagamentos

            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.error(
                    "Failed to generate installments",
                    extra={"concessao_id": concessao.id, "error": str(e)},
                    exc_info=True
                )
                raise

    def find_by_id(self, pagamento_id: str) -> Optional[Pagamento]:
        document = self.mongo_service.find_by_id(self.collection_name, pagamento_id)
        return Pagamento(**document) if document else None

    def find_all(self, filtros: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Find installments.

        Supported filters: ``concessao_id``, ``solicitacao_id``, ``status``,
        ``limit`` and ``offset``.

        Returns:
            Dict with ``items`` (list of Pagamento) and ``total``
        """
        filtros = dict(filtros or {})
        limit = filtros.pop("limit", 0) or 0
        offset = filtros.pop("offset", 0) or 0

        query = {
            campo: filtros[campo]
            for campo in ("concessao_id", "solicitacao_id", "status")
            if filtros.get(campo) is not None
        }
        if "status" in query:
            try:
                query["status"] = StatusPagamento(query["status"]).value
            except ValueError:
                raise ValidationException(f"Invalid installment status: {query['status']}")

        documents = self.mongo_service.find(
            self.collection_name, query, sort_by="numero_parcela", skip=offset, limit=limit
        )
        total = self.mongo_service.count(self.collection_name, query)

        return {
            "items": [Pagamento(**document) for document in documents],
            "total": total
        }

    def find_by_concessao(self, concessao_id: str) -> List[Pagamento]:
        return self.find_all({"concessao_id": concessao_id})["items"]

    def contar_por_concessao(self, concessao_id: str) -> int:
        return self.mongo_service.count(self.collection_name, {"concessao_id": concessao_id})

    def cancelar(self, pagamento_id: str, motivo: str, usuario_id: Optional[str]) -> Pagamento:
        """
        Cancel a single installment.

        Raises:
            NotFoundException: If the installment does not exist
            ConflictException: If it is already cancelled or confirmed
        """
        with tracer.start_as_current_span("pagamento.cancelar") as span:
            span.set_attribute("pagamento.id", pagamento_id)

            pagamento = self.find_by_id(pagamento_id)
            if not pagamento:
                raise NotFoundException(f"Installment {pagamento_id} not found")

            if pagamento.status == StatusPagamento.CANCELADO:
                raise ConflictException("Installment is already cancelled")
            if pagamento.status == StatusPagamento.CONFIRMADO:
                raise ConflictException("Confirmed installments cannot be cancelled")

            self.mongo_service.update(
                self.collection_name,
                pagamento_id,
                {"status": StatusPagamento.CANCELADO.value, "motivo_cancelamento": motivo},
                usuario_id
            )

            pagamento.status = StatusPagamento.CANCELADO
            pagamento.motivo_cancelamento = motivo
            pagamento.update_timestamp(usuario_id)

            logger.info(
                "Installment cancelled",
                extra={"pagamento_id": pagamento_id, "concessao_id": pagamento.concessao_id}
            )
            return pagamento

    def atualizar_status(self, pagamento_id: str, novo_status, usuario_id: Optional[str]) -> Pagamento:
        """
        Change an installment status and notify registered listeners.

        Listener failures are logged and never undo the status change.
        """
        with tracer.start_as_current_span("pagamento.atualizar_status") as span:
            try:
                status = StatusPagamento(novo_status)
            except ValueError:
                raise ValidationException(f"Invalid installment status: {novo_status}")

            span.set_attributes({"pagamento.id": pagamento_id, "pagamento.status": status.value})

            pagamento = self.find_by_id(pagamento_id)
            if not pagamento:
                raise NotFoundException(f"Installment {pagamento_id} not found")

            updates = {"status": status.value}
            if status == StatusPagamento.LIBERADO:
                updates["data_liberacao"] = utcnow()

            self.mongo_service.update(self.collection_name, pagamento_id, updates, usuario_id)

            pagamento.status = status
            if "data_liberacao" in updates:
                pagamento.data_liberacao = updates["data_liberacao"]
            pagamento.update_timestamp(usuario_id)

            logger.info(
                "Installment status updated",
                extra={
                    "pagamento_id": pagamento_id,
                    "concessao_id": pagamento.concessao_id,
                    "status": status.value
                }
            )

            for listener in self._listeners:
                try:
                    listener(pagamento, status, usuario_id)
                except Exception as e:
                    logger.error(
                        "Installment status listener failed",
                        extra={"pagamento_id": pagamento_id, "error": str(e)},
                        exc_info=True
                    )

            return pagamento
