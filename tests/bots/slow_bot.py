"""Bot that sleeps before every turn reply. Usage: slow_bot.py <seconds>"""

import sys
import time


def main():
    delay = float(sys.argv[1]) if len(sys.argv) > 1 else 5.0
    for _ in range(3):
        sys.stdin.readline()
    sys.stdout.write("SlowBot\n")
    sys.stdout.flush()

    while True:
        line = sys.stdin.readline()
        if not line:
            break
        time.sleep(delay)
        sys.stdout.write("\n")
        sys.stdout.flush()


if __name__ == "__main__":
    main()
