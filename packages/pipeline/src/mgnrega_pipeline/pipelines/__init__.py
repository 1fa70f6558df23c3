"""
mgnrega_pipeline.pipelines — End-to-end pipeline orchestrators.

Each pipeline module exports a run() async function:

    from mgnrega_pipeline.pipelines import mgnrega

    result = await mgnrega.run(state_name="Bihar")
"""
