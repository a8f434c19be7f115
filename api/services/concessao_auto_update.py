# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Grant updates driven by installment status changes.
"""

import logging
from typing import Optional
from opentelemetry import trace

from .concessao import ConcessaoService
from .pagamento import PagamentoService
from domain.concessoes import (
    MOTIVO_CESSACAO_AUTOMATICA,
    calcular_estatisticas,
    is_ultima_parcela,
    pode_ser_cessada
)
from models.base import SYSTEM_USER
from models.entities import EstatisticasParcelas, Pagamento
from models.enums import StatusConcessao, StatusPagamento

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ConcessaoAutoUpdateService:
    """Reacts to installment status changes on behalf of the grant lifecycle."""

    def __init__(self, concessao_service: ConcessaoService, pagamento_service: PagamentoService):
        self.concessao_service = concessao_service
        self.pagamento_service = pagamento_service

    def processar_atualizacao_pagamento(
        self,
        pagamento: Pagamento,
        novo_status,
        usuario_id: Optional[str] = None
    ) -> None:
        """
        Handle an installment status change.

        Confirming the first installment activates an ``APTO`` grant and
        confirming the last one ceases a grant whose installments are all
        confirmed. Every change then runs the automatic closure check.
        Failures are logged and never reach the installment update that
        triggered them.
        """
        with tracer.start_as_current_span("concessao_auto_update.processar_atualizacao_pagamento") as span:
            span.set_attributes({
                "pagamento.id": pagamento.id,
                "pagamento.concessao_id": pagamento.concessao_id,
                "pagamento.status": str(novo_status)
            })

            try:
                if pagamento.numero_parcela == 1 and novo_status == StatusPagamento.CONFIRMADO:
                    concessao = self.concessao_service.find_by_id(pagamento.concessao_id)
                    if concessao and concessao.status == StatusConcessao.APTO:
                        self.concessao_service.atualizar_status(
                            concessao.id,
                            StatusConcessao.ATIVO,
                            usuario_id,
                            "Ativação automática - primeira parcela confirmada"
                        )
                        logger.info(
                            "Grant activated by first installment confirmation",
                            extra={"concessao_id": concessao.id, "pagamento_id": pagamento.id}
                        )

                if novo_status == StatusPagamento.CONFIRMADO:
                    self.verificar_cessacao_por_confirmacao(pagamento)

                self.concessao_service.verificar_encerramento_automatico(pagamento.concessao_id)

            except Exception as e:
                span.record_exception(e)
                logger.error(
                    "Failed to update grant after installment status change",
                    extra={
                        "concessao_id": pagamento.concessao_id,
                        "pagamento_id": pagamento.id,
                        "error": str(e)
                    },
                    exc_info=True
                )

    def verificar_cessacao_por_confirmacao(self, pagamento: Pagamento) -> bool:
        """
        Cease an active grant once its last installment is confirmed and
        every earlier installment was confirmed too.

        Returns:
            True if the grant was moved to ``CESSADO``
        """
        with tracer.start_as_current_span("concessao_auto_update.verificar_cessacao_por_confirmacao") as span:
            span.set_attributes({
                "pagamento.id": pagamento.id,
                "pagamento.concessao_id": pagamento.concessao_id
            })

            pagamentos = self.pagamento_service.find_by_concessao(pagamento.concessao_id)
            if not is_ultima_parcela(pagamento, pagamentos):
                span.set_attribute("concessao.cessada", False)
                return False

            concessao = self.concessao_service.find_by_id(pagamento.concessao_id)
            if not concessao or not pode_ser_cessada(concessao, pagamentos):
                logger.debug(
                    "Last installment confirmed but grant cannot cease yet",
                    extra={"concessao_id": pagamento.concessao_id, "pagamento_id": pagamento.id}
                )
                span.set_attribute("concessao.cessada", False)
                return False

            self.concessao_service.atualizar_status(
                concessao.id,
                StatusConcessao.CESSADO,
                SYSTEM_USER,
                MOTIVO_CESSACAO_AUTOMATICA
            )
            logger.info(
                f"Grant ceased after all {len(pagamentos)} installments were confirmed",
                extra={"concessao_id": concessao.id, "pagamento_id": pagamento.id}
            )
            span.set_attribute("concessao.cessada", True)
            return True

    def obter_estatisticas_parcelas(self, concessao_id: str) -> EstatisticasParcelas:
        """Installment progress of a grant."""
        with tracer.start_as_current_span("concessao_auto_update.obter_estatisticas_parcelas") as span:
            span.set_attribute("concessao.id", concessao_id)
            estatisticas = calcular_estatisticas(self.pagamento_service.find_by_concessao(concessao_id))
            span.set_attribute("concessao.percentual_concluido", estatisticas.percentual_concluido)
            return estatisticas
