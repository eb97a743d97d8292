import multiprocessing
import os
import signal
import sys
import time

from dotenv import load_dotenv

load_dotenv()

from vendorvault.workers.provisioning_runner import run_provisioning_worker


# =========================
# CONFIG SCALE HERE
# =========================
PROVISIONING_WORKERS = int(os.getenv("PROVISIONING_WORKERS", "2"))
# =========================


processes = []


def start_workers(worker_type: str, count: int, target_func):
    for i in range(count):
        p = multiprocessing.Process(
            target=target_func,
            args=(i + 1,),
            name=f"{worker_type}-{i+1}"
        )
        p.start()
        processes.append(p)
        print(f"[SPAWNED] {worker_type}-{i+1} PID={p.pid}", flush=True)


def shutdown(signum, frame):
    print(f"\n[MAIN] Received signal {signum}. Shutting down...", flush=True)

    for p in processes:
        if p.is_alive():
            print(f"[MAIN] Terminating {p.name} (PID={p.pid})", flush=True)
            p.terminate()

    for p in processes:
        p.join()

    print("[MAIN] All workers stopped.")
    sys.exit(0)


def main():
    print("\n========== STARTING WORKERS ==========")
    print(f"Provisioning Workers: {PROVISIONING_WORKERS}")
    print("======================================\n")

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    if PROVISIONING_WORKERS > 0:
        start_workers(
            worker_type="ProvisioningWorker",
            count=PROVISIONING_WORKERS,
            target_func=run_provisioning_worker
        )

    try:
        while True:
            time.sleep(5)
    except KeyboardInterrupt:
        shutdown(signal.SIGINT, None)


if __name__ == "__main__":
    main()
