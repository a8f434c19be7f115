"""
Grant Lifecycle Services - Application Entry Point

This module reads the environment configuration, initializes observability
and wires the grant lifecycle services together. A transport layer (HTTP,
queue consumer, CLI) obtains its services from ``create_services``.
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from observability.config import setup_observability
from services.mongodb import MongoDBService
from services.historico import HistoricoConcessaoService
from services.solicitacao import SolicitacaoService
from services.pagamento import PagamentoService
from services.concessao import ConcessaoService
from services.concessao_auto_update import ConcessaoAutoUpdateService

logger = logging.getLogger(__name__)


def load_config() -> Dict[str, Any]:
    """Environment configuration with development defaults."""
    return {
        'ENVIRONMENT': os.getenv('ENVIRONMENT', 'development'),
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/concessoes_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'concessoes_dev'),
        'OTEL_ENABLED': os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
        'SERVICE_VERSION': os.getenv('SERVICE_VERSION', '1.0.0'),
    }


@dataclass
class ServiceContainer:
    """Wired service instances."""
    mongodb_service: MongoDBService
    historico_service: HistoricoConcessaoService
    solicitacao_service: SolicitacaoService
    pagamento_service: PagamentoService
    concessao_service: ConcessaoService
    auto_update_service: ConcessaoAutoUpdateService


def create_services(
    config: Optional[Dict[str, Any]] = None,
    mongodb_service: Optional[MongoDBService] = None,
    init_observability: bool = True
) -> ServiceContainer:
    """
    Build the grant lifecycle services.

    Args:
        config: Configuration dict, defaults to ``load_config()``
        mongodb_service: Pre-built MongoDB service (tests inject a double)
        init_observability: Whether to configure tracing and logging

    Returns:
        ServiceContainer with every service wired
    """
    config = config or load_config()

    if init_observability:
        setup_observability()

    if mongodb_service is None:
        mongodb_service = MongoDBService(config['MONGODB_URI'], config['MONGODB_DATABASE'])

    historico_service = HistoricoConcessaoService(mongodb_service)
    solicitacao_service = SolicitacaoService(mongodb_service)
    pagamento_service = PagamentoService(mongodb_service, solicitacao_service)
    concessao_service = ConcessaoService(
        mongodb_service,
        historico_service,
        pagamento_service,
        solicitacao_service
    )
    auto_update_service = ConcessaoAutoUpdateService(concessao_service, pagamento_service)

    # Installment status changes drive grant activation and automatic closure
    pagamento_service.registrar_listener(auto_update_service.processar_atualizacao_pagamento)

    logger.info(
        "Grant lifecycle services initialized",
        extra={"environment": config['ENVIRONMENT'], "database": config['MONGODB_DATABASE']}
    )

    return ServiceContainer(
        mongodb_service=mongodb_service,
        historico_service=historico_service,
        solicitacao_service=solicitacao_service,
        pagamento_service=pagamento_service,
        concessao_service=concessao_service,
        auto_update_service=auto_update_service
    )
