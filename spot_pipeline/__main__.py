from spot_pipeline.main import cli

cli()
