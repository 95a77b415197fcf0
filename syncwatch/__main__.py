from syncwatch.main import run

run()
