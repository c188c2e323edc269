import argparse
import gzip
import os
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Site profiles mixing fixed routes with high-cardinality ones
# - shop: catalogue with category slugs and numeric product ids
# - api: JSON API with numeric user and order ids
# {id} expands to a number, {slug} to a 3+ hyphen slug

SITE_PROFILES = {
    "shop": {
        "paths": [
            ("/", 0.10),
            ("/categorie/{word}/nantes", 0.15),
            ("/produit/{slug}", 0.20),
            ("/produit/{id}", 0.10),
            ("/panier", 0.10),
            ("/panier/ajout/{id}", 0.08),
            ("/recherche?q={word}", 0.12),
            ("/static/site.css", 0.08),
            ("/static/app.js", 0.07),
        ],
        "statuses": [(200, 0.84), (301, 0.03), (404, 0.07), (500, 0.03), (502, 0.02), (503, 0.01)],
        "durations": {"/produit": (0.2, 1.5), "/recherche": (0.4, 3.0)},
    },
    "api": {
        "paths": [
            ("/api/v1/users/{id}", 0.25),
            ("/api/v1/users/{id}/orders", 0.15),
            ("/api/v1/orders/{id}", 0.15),
            ("/api/v1/search", 0.10),
            ("/api/v1/auth/login", 0.10),
            ("/health", 0.15),
            ("/metrics", 0.10),
        ],
        "statuses": [(200, 0.85), (201, 0.04), (401, 0.03), (404, 0.04), (500, 0.02), (504, 0.02)],
        "durations": {"/api/v1/search": (0.3, 2.0), "/api/v1/users": (0.05, 0.6)},
    },
}

WORDS = ["robes", "blouses", "femme", "homme", "enfant", "ete", "hiver", "soldes", "lin", "coton"]
METHODS = [("GET", 0.80), ("POST", 0.15), ("PUT", 0.03), ("DELETE", 0.02)]
USER_AGENTS = ["Mozilla/5.0 (X11; Linux x86_64)", "curl/8.5.0", "kysoebot", "Googlebot/2.1"]


def weighted_choice(options):
    r = random.random()
    cumulative = 0.0
    for value, weight in options:
        cumulative += weight
        if r <= cumulative:
            return value
    return options[-1][0]


def random_ip():
    return ".".join(str(random.randint(1, 254)) for _ in range(4))


def random_slug():
    return "-".join(random.sample(WORDS, random.randint(4, 6)))


def expand_path(template):
    path = template
    while "{id}" in path:
        path = path.replace("{id}", str(random.randint(1, 99999)), 1)
    while "{slug}" in path:
        path = path.replace("{slug}", random_slug(), 1)
    while "{word}" in path:
        path = path.replace("{word}", random.choice(WORDS), 1)
    return path


def random_bytes(status):
    if status >= 500:
        return random.randint(200, 1200)
    if status >= 400:
        return random.randint(400, 2000)
    if 300 <= status < 400:
        return random.randint(100, 400)
    return random.randint(800, 30000)


def random_duration(profile, path):
    low, high = 0.005, 0.3
    for prefix, bounds in profile.get("durations", {}).items():
        if path.startswith(prefix):
            low, high = bounds
    return random.uniform(low, high)


def generate_line(profile, when, with_duration=False):
    method = weighted_choice(METHODS)
    path = expand_path(weighted_choice(profile["paths"]))
    status = weighted_choice(profile["statuses"])
    size = random_bytes(status)
    timestamp = when.strftime("%d/%b/%Y:%H:%M:%S %z")
    agent = random.choice(USER_AGENTS)
    line = f"{random_ip()} - - [{timestamp}] \"{method} {path} HTTP/1.1\" {status} {size} \"-\" \"{agent}\""
    if with_duration:
        line += f" {random.randint(100, 999)} {random_duration(profile, path):.3f}"
    return line + "\n"


def write_log(profile_name, rows, output_dir, with_duration=False, compress=False):
    profile = SITE_PROFILES[profile_name]
    start = datetime.now(timezone.utc).replace(microsecond=0) - timedelta(hours=24)
    step = 86400 / max(rows, 1)
    suffix = ".log.gz" if compress else ".log"
    filename = Path(output_dir) / f"{profile_name}{suffix}"
    opener = gzip.open if compress else open
    with opener(filename, "wt", encoding="utf-8") as handle:
        for index in range(rows):
            handle.write(generate_line(profile, start + timedelta(seconds=index * step), with_duration))
    return filename, rows


def parse_args():
    parser = argparse.ArgumentParser(description="Generate combined-format access logs with slug and id routes.")
    parser.add_argument("--profile", choices=sorted(SITE_PROFILES), default="shop", help="Site profile to simulate.")
    parser.add_argument("--rows", type=int, default=5000, help="Number of lines to write.")
    parser.add_argument("--output-dir", default="logs", help="Directory for the generated log file.")
    parser.add_argument("--duration", action="store_true", help="Append request duration (combined_duration format).")
    parser.add_argument("--gzip", action="store_true", help="Write a gzip-compressed log.")
    parser.add_argument("--seed", type=int, help="RNG seed for reproducibility.")
    return parser.parse_args()


def main():
    args = parse_args()
    if args.seed is not None:
        random.seed(args.seed)

    os.makedirs(args.output_dir, exist_ok=True)
    path, rows = write_log(args.profile, args.rows, args.output_dir, args.duration, args.gzip)
    print(f"Generated {rows} lines in {Path(path).resolve()}")


if __name__ == "__main__":
    main()
