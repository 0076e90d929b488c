"""
Order pipeline — takes a newly inserted order from submission to reports.

    engine.OrderHandler         runs the submission steps for one order
    polling.PollingSupervisor   waits for the analysis job, post-processes reports
    finalize.OrderFinalizer     writes terminal order state and any refund

Submodules are imported directly (the clients depend on pipeline.errors,
so this package does not re-export the orchestration classes).
"""
