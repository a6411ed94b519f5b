from staffbot.rpc.contracts import RPCOutcome
from staffbot.rpc.errors import NotFound, Unauthorized
from staffbot.rpc.reporting import (
    render_error,
    render_success,
    render_unauthorized,
    report_error,
    report_success,
)


def test_success_messages() -> None:
    assert render_success("BotClaim", RPCOutcome.no_content()) == (
        "Successfully performed the operation required: `BotClaim`"
    )
    assert render_success("BotApprove", RPCOutcome.content("`X` approved")) == (
        "Successfully performed the operation required: `BotApprove`\n**`X` approved**"
    )


def test_error_messages() -> None:
    assert render_error("BotClaim", NotFound("Bot `1` does not exist")) == (
        "Error performing `BotClaim`: **Bot `1` does not exist**"
    )
    assert render_unauthorized(Unauthorized("1")) == (
        "Whoa there, do you have permission to do this?: You must be a staff member to perform RPC actions"
    )


def test_reports() -> None:
    ok = report_success("BotVoteResetAll", RPCOutcome.content("Reset votes of 3 bots"))
    assert ok.done and ok.context == "Reset votes of 3 bots"

    err = report_error("BotClaim", NotFound("gone"))
    assert not err.done
    assert err.error_code == "not_found"
    assert err.context == "gone"
