from stockfeed.main import run

run()
