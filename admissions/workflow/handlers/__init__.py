from admissions.workflow.handlers.acceptance import handle_acceptance

HANDLERS = {
    "acceptance": handle_acceptance,
}
