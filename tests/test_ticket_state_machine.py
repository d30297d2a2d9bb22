from app.tickets.state import ProblemType, TicketStateMachine, TicketStatus


def test_ticket_state_machine_allows_forward_transitions():
    machine = TicketStateMachine()
    assert machine.can_transition(TicketStatus.OPEN, TicketStatus.IN_PROGRESS)
    assert machine.can_transition(TicketStatus.OPEN, TicketStatus.FINALIZED)
    assert machine.can_transition(TicketStatus.IN_PROGRESS, TicketStatus.FINALIZED)
    assert machine.can_transition(TicketStatus.FINALIZED, TicketStatus.FINALIZED)


def test_ticket_state_machine_blocks_backward_transitions():
    machine = TicketStateMachine()
    assert not machine.can_transition(TicketStatus.FINALIZED, TicketStatus.OPEN)
    assert not machine.can_transition(TicketStatus.IN_PROGRESS, TicketStatus.OPEN)
    assert not machine.can_transition(TicketStatus.FINALIZED, TicketStatus.IN_PROGRESS)


def test_permissive_state_machine_accepts_any_pair():
    machine = TicketStateMachine(permissive=True)
    assert machine.permissive
    assert machine.can_transition(TicketStatus.FINALIZED, TicketStatus.OPEN)
    assert machine.can_transition(TicketStatus.IN_PROGRESS, TicketStatus.OPEN)


def test_initial_state_and_labels():
    assert TicketStateMachine.initial_state() is TicketStatus.OPEN
    assert TicketStatus.IN_PROGRESS.value == "em_execucao"
    assert TicketStatus.IN_PROGRESS.label == "Em Execução"
    assert ProblemType.PLUMBING.label == "Hidráulica"
