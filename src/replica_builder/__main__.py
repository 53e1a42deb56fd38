from replica_builder.cli import run

run()
