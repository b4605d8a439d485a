class PipelineError(Exception):
    """Fatal failure at any stage of the run. The message names the cause."""
