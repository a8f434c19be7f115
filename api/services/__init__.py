# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence and side-effecting operations.
"""

from .mongodb import MongoDBService, PaginationResult, get_mongodb_service, close_mongodb_connection
from .historico import HistoricoConcessaoService
from .solicitacao import SolicitacaoService
from .pagamento import PagamentoService
from .concessao import ConcessaoService
from .concessao_auto_update import ConcessaoAutoUpdateService

__all__ = [
    "MongoDBService",
    "PaginationResult",
    "get_mongodb_service",
    "close_mongodb_connection",
    "HistoricoConcessaoService",
    "SolicitacaoService",
    "PagamentoService",
    "ConcessaoService",
    "ConcessaoAutoUpdateService"
]
