from vendorvault import create_app
from vendorvault.tasks.provisioning_worker import ProvisioningWorker


def run_provisioning_worker(worker_id: int = 1):
    import os, multiprocessing
    print(
        f"[BOOT] {multiprocessing.current_process().name} "
        f"PID={os.getpid()}",
        flush=True
    )

    app = create_app()
    with app.app_context():
        worker = ProvisioningWorker(app.config["KAFKA_BOOTSTRAP_SERVERS"], worker_id)
        worker.run()


if __name__ == "__main__":
    run_provisioning_worker(worker_id=1)
