from ironic_readiness.cli.main import app

app(prog_name="wait-for-ironic")
