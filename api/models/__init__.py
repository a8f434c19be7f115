# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the grant lifecycle.
"""

# Base models
from .base import BaseEntity, BaseRequest, SYSTEM_USER, generate_id, utcnow

# Enumerations
from .enums import (
    StatusConcessao,
    OperacaoConcessao,
    StatusPagamento,
    Periodicidade,
    MESES_POR_PERIODICIDADE
)

# Core entities
from .entities import (
    Beneficiario,
    EspecificacoesBeneficio,
    TipoBeneficio,
    Solicitacao,
    Concessao,
    HistoricoConcessao,
    MotivoOperacao,
    Pagamento,
    EstatisticasParcelas,
    ConcessaoResumo
)

# Request models
from .requests import (
    CreateConcessaoRequest,
    UpdateStatusConcessaoRequest,
    ProrrogarConcessaoRequest,
    SuspenderConcessaoRequest,
    BloquearConcessaoRequest,
    DesbloquearConcessaoRequest,
    ReativarConcessaoRequest,
    CancelarConcessaoRequest,
    ConcessaoFilters
)

__all__ = [
    # Base models
    "BaseEntity",
    "BaseRequest",
    "SYSTEM_USER",
    "generate_id",
    "utcnow",

    # Enumerations
    "StatusConcessao",
    "OperacaoConcessao",
    "StatusPagamento",
    "Periodicidade",
    "MESES_POR_PERIODICIDADE",

    # Core entities
    "Beneficiario",
    "EspecificacoesBeneficio",
    "TipoBeneficio",
    "Solicitacao",
    "Concessao",
    "HistoricoConcessao",
    "MotivoOperacao",
    "Pagamento",
    "EstatisticasParcelas",
    "ConcessaoResumo",

    # Request models
    "CreateConcessaoRequest",
    "UpdateStatusConcessaoRequest",
    "ProrrogarConcessaoRequest",
    "SuspenderConcessaoRequest",
    "BloquearConcessaoRequest",
    "DesbloquearConcessaoRequest",
    "ReativarConcessaoRequest",
    "CancelarConcessaoRequest",
    "ConcessaoFilters"
]
