import argparse, httpx

def main():
    ap = argparse.ArgumentParser(description="Look up sold eBay prices via the running API")
    ap.add_argument('--query', required=True, help='Product search text')
    ap.add_argument('--host', default='http://localhost:3000', help='API host')
    ap.add_argument('--get', action='store_true', help='Use GET ?q= instead of POST')
    args = ap.parse_args()

    url = f"{args.host}/api/ebay-price"

    with httpx.Client(timeout=30.0) as client:
        if args.get:
            r = client.get(url, params={'q': args.query})
        else:
            r = client.post(url, json={'query': args.query})
        print(r.status_code, r.text)

if __name__ == '__main__':
    main()
