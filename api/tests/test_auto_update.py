# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for grant updates driven by installment status changes.
"""

from unittest.mock import patch

from domain.concessoes import MOTIVO_CESSACAO_AUTOMATICA
from models.base import SYSTEM_USER
from models.enums import StatusConcessao, StatusPagamento
from services.mongodb import CONCESSOES

USUARIO = "operador-1"


class TestProcessarAtualizacaoPagamento:
    """Test the installment listener."""

    def test_first_confirmation_activates_apto_grant(self, services, make_concessao, make_pagamentos, store):
        concessao = make_concessao(StatusConcessao.APTO)
        primeira, _ = make_pagamentos(concessao, [StatusPagamento.PENDENTE, StatusPagamento.PENDENTE])

        services.pagamento_service.atualizar_status(primeira.id, StatusPagamento.CONFIRMADO, USUARIO)

        stored = store.get(CONCESSOES, concessao.id)
        assert stored["status"] == "ativo"
        assert stored["version"] == 2
        historico = services.concessao_service.listar_historico(concessao.id)
        assert [(h.status_anterior, h.status_novo) for h in historico] == [("apto", "ativo")]

    def test_later_confirmation_does_not_activate(self, services, make_concessao, make_pagamentos, store):
        concessao = make_concessao(StatusConcessao.APTO)
        _, segunda = make_pagamentos(concessao, [StatusPagamento.PENDENTE, StatusPagamento.PENDENTE])

        services.pagamento_service.atualizar_status(segunda.id, StatusPagamento.CONFIRMADO, USUARIO)

        assert store.get(CONCESSOES, concessao.id)["status"] == "apto"

    def test_confirmation_leaves_other_statuses(self, services, make_concessao, make_pagamentos, store):
        concessao = make_concessao(StatusConcessao.SUSPENSO)
        primeira = make_pagamentos(concessao, [StatusPagamento.PENDENTE])[0]

        services.pagamento_service.atualizar_status(primeira.id, StatusPagamento.CONFIRMADO, USUARIO)

        assert store.get(CONCESSOES, concessao.id)["status"] == "suspenso"

    def test_failures_are_swallowed(self, services, make_concessao, make_pagamentos):
        concessao = make_concessao(StatusConcessao.ATIVO)
        pagamento = make_pagamentos(concessao, [StatusPagamento.PENDENTE])[0]

        with patch.object(
            services.concessao_service, "verificar_encerramento_automatico", side_effect=RuntimeError("boom")
        ):
            services.auto_update_service.processar_atualizacao_pagamento(pagamento, StatusPagamento.LIBERADO, USUARIO)

    def test_closure_check_runs_for_every_change(self, services, make_concessao, make_pagamentos):
        concessao = make_concessao(StatusConcessao.ATIVO)
        pagamento = make_pagamentos(concessao, [StatusPagamento.PENDENTE])[0]

        with patch.object(services.concessao_service, "verificar_encerramento_automatico") as verificar:
            services.auto_update_service.processar_atualizacao_pagamento(pagamento, StatusPagamento.AGENDADO)

        verificar.assert_called_once_with(concessao.id)


class TestCessacaoPorConfirmacao:
    """Test cessation once every installment is confirmed."""

    def test_confirming_every_installment_ceases_grant(self, services, make_concessao, make_pagamentos, store):
        concessao = make_concessao(StatusConcessao.ATIVO)
        parcelas = make_pagamentos(concessao, [StatusPagamento.PENDENTE, StatusPagamento.PENDENTE])

        for parcela in parcelas:
            services.pagamento_service.atualizar_status(parcela.id, StatusPagamento.LIBERADO, USUARIO)
            services.pagamento_service.atualizar_status(parcela.id, StatusPagamento.CONFIRMADO, USUARIO)

        assert store.get(CONCESSOES, concessao.id)["status"] == "cessado"
        historico = services.concessao_service.listar_historico(concessao.id)
        assert [(h.status_anterior, h.status_novo) for h in historico] == [("ativo", "cessado")]
        assert historico[-1].motivo == MOTIVO_CESSACAO_AUTOMATICA
        assert historico[-1].alterado_por == SYSTEM_USER

    def test_last_confirmation_waits_for_earlier_installments(self, services, make_concessao, make_pagamentos, store):
        concessao = make_concessao(StatusConcessao.ATIVO)
        _, ultima = make_pagamentos(concessao, [StatusPagamento.LIBERADO, StatusPagamento.PENDENTE])

        services.pagamento_service.atualizar_status(ultima.id, StatusPagamento.CONFIRMADO, USUARIO)

        assert store.get(CONCESSOES, concessao.id)["status"] == "ativo"

    def test_only_last_installment_triggers_cessation(self, services, make_concessao, make_pagamentos, store):
        concessao = make_concessao(StatusConcessao.ATIVO)
        primeira, _ = make_pagamentos(concessao, [StatusPagamento.PENDENTE, StatusPagamento.CONFIRMADO])

        services.pagamento_service.atualizar_status(primeira.id, StatusPagamento.CONFIRMADO, USUARIO)

        assert store.get(CONCESSOES, concessao.id)["status"] == "ativo"

    def test_suspended_grant_is_not_ceased(self, services, make_concessao, make_pagamentos, store):
        concessao = make_concessao(StatusConcessao.SUSPENSO)
        _, ultima = make_pagamentos(concessao, [StatusPagamento.CONFIRMADO, StatusPagamento.PENDENTE])

        assert services.auto_update_service.verificar_cessacao_por_confirmacao(ultima) is False
        services.pagamento_service.atualizar_status(ultima.id, StatusPagamento.CONFIRMADO, USUARIO)

        assert store.get(CONCESSOES, concessao.id)["status"] == "suspenso"


class TestEstatisticasParcelas:
    """Test installment progress reporting."""

    def test_progress(self, services, make_concessao, make_pagamentos):
        concessao = make_concessao(StatusConcessao.ATIVO)
        make_pagamentos(concessao, [
            StatusPagamento.CONFIRMADO, StatusPagamento.LIBERADO, StatusPagamento.PENDENTE, StatusPagamento.PENDENTE
        ])

        estatisticas = services.auto_update_service.obter_estatisticas_parcelas(concessao.id)

        assert estatisticas.total == 4
        assert estatisticas.confirmadas == 1
        assert estatisticas.liberadas == 1
        assert estatisticas.pendentes == 3
        assert estatisticas.percentual_concluido == 25

    def test_grant_without_installments(self, services, make_concessao):
        concessao = make_concessao(StatusConcessao.APTO)

        estatisticas = services.auto_update_service.obter_estatisticas_parcelas(concessao.id)

        assert estatisticas.total == 0
        assert estatisticas.percentual_concluido == 0
