# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the grant history recorder and request lookups.
"""

import pytest
from datetime import timedelta

from models.base import utcnow
from models.requests import ConcessaoFilters
from services.mongodb import HISTORICO_CONCESSOES
from services.solicitacao import build_solicitacao_query


class TestHistoricoConcessaoService:
    """Test history appends and listing."""

    def test_append_defaults_actor(self, services, store):
        entry = services.historico_service.append("c-1", "ativo", "cessado", None, "Encerramento automático")

        assert entry.alterado_por == "SISTEMA"
        stored = store.get(HISTORICO_CONCESSOES, entry.id)
        assert stored["status_anterior"] == "ativo"
        assert stored["status_novo"] == "cessado"

    def test_listing_is_chronological(self, services):
        agora = utcnow()
        historico = services.historico_service
        historico.append("c-1", "ativo", "suspenso", "op-1", "Internação", data_alteracao=agora)
        historico.append("c-1", "apto", "ativo", "op-1", None, data_alteracao=agora - timedelta(days=3))
        historico.append("c-2", "ativo", "bloqueado", "op-2", "Auditoria")

        entries = historico.listar_por_concessao("c-1")

        assert [(e.status_anterior, e.status_novo) for e in entries] == [("apto", "ativo"), ("ativo", "suspenso")]

    def test_invalid_status_propagates(self, services):
        with pytest.raises(ValueError):
            services.historico_service.append("c-1", "ativo", "arquivado", "op-1", None)

    def test_storage_failure_propagates(self, services, mongo_service):
        mongo_service.create.side_effect = RuntimeError("write failed")

        with pytest.raises(RuntimeError):
            services.historico_service.append("c-1", "ativo", "suspenso", "op-1", "Internação")


class TestSolicitacaoQuery:
    """Test request-level filter translation."""

    def test_empty(self):
        assert build_solicitacao_query(ConcessaoFilters()) == {}

    def test_fields(self):
        query = build_solicitacao_query(ConcessaoFilters(
            unidade_id="unidade-centro", determinacao_judicial=True, prioridade=1
        ))

        assert query == {"unidade_id": "unidade-centro", "determinacao_judicial_flag": True, "prioridade": 1}

    def test_search_by_name_escapes_regex(self):
        query = build_solicitacao_query(ConcessaoFilters(search="Maria(filha)"))

        assert len(query["$or"]) == 2
        assert query["$or"][1]["beneficiario.nome"]["$regex"] == r"Maria\(filha\)"

    def test_search_by_cpf_uses_digits(self, services, make_solicitacao):
        encontrada = make_solicitacao()

        ids = services.solicitacao_service.find_ids(ConcessaoFilters(search="456.789"))

        assert ids == [encontrada.id]
