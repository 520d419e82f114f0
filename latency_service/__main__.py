from latency_service.main import run

run()
