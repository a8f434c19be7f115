# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the benefit grant (concessão) platform.
"""

from enum import Enum


class StatusConcessao(str, Enum):
    """Grant lifecycle status enumeration."""
    APTO = "apto"
    ATIVO = "ativo"
    SUSPENSO = "suspenso"
    BLOQUEADO = "bloqueado"
    CESSADO = "cessado"
    CANCELADO = "cancelado"


class OperacaoConcessao(str, Enum):
    """Operations that require a catalogued reason."""
    BLOQUEIO = "bloqueio"
    DESBLOQUEIO = "desbloqueio"
    SUSPENSAO = "suspensao"
    REATIVACAO = "reativacao"
    CANCELAMENTO = "cancelamento"


class StatusPagamento(str, Enum):
    """Installment (pagamento) status enumeration."""
    PENDENTE = "pendente"
    AGENDADO = "agendado"
    LIBERADO = "liberado"
    PAGO = "pago"
    RECEBIDO = "recebido"
    CONFIRMADO = "confirmado"
    CANCELADO = "cancelado"
    VENCIDO = "vencido"
    FINALIZADO = "finalizado"


class Periodicidade(str, Enum):
    """Benefit payment periodicity."""
    UNICO = "unico"
    MENSAL = "mensal"
    BIMESTRAL = "bimestral"
    TRIMESTRAL = "trimestral"
    SEMESTRAL = "semestral"
    ANUAL = "anual"


# Months between consecutive installments for each periodicity
MESES_POR_PERIODICIDADE = {
    Periodicidade.UNICO: 0,
    Periodicidade.MENSAL: 1,
    Periodicidade.BIMESTRAL: 2,
    Periodicidade.TRIMESTRAL: 3,
    Periodicidade.SEMESTRAL: 6,
    Periodicidade.ANUAL: 12,
}
