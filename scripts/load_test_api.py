#!/usr/bin/env python3
"""
Load testing script for the feed API.
Hits /feed (authenticated) and /feed/public (anonymous) concurrently and
reports latency plus the pool mix actually served.
"""

import requests
import time
import statistics
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Dict, Optional
import argparse
import json


def percentile(values: List[float], fraction: float) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    return ordered[min(int(len(ordered) * fraction), len(ordered) - 1)]


class FeedLoadTester:
    """Load tester for the feed API."""
    
    def __init__(self, base_url: str = "http://localhost:8000"):
        self.base_url = base_url.rstrip('/')
    
    def test_health(self) -> bool:
        try:
            response = requests.get(f"{self.base_url}/health", timeout=5)
            return response.status_code == 200 and response.json().get("status") == "healthy"
        except requests.RequestException as e:
            print(f"Health check failed: {e}")
            return False
    
    def fetch_feed(self, user_id: Optional[str], limit: int) -> Dict:
        """One feed request; user_id None requests the public feed."""
        if user_id is None:
            url, params = f"{self.base_url}/feed/public", {"limit": limit}
        else:
            url, params = f"{self.base_url}/feed", {"user_id": user_id, "limit": limit}
        
        response = requests.get(url, params=params, timeout=30)
        data = response.json() if response.status_code == 200 else None
        return {
            "status_code": response.status_code,
            "response_time": response.elapsed.total_seconds(),
            "success": response.status_code == 200,
            "data": data
        }
    
    def run_load_test(
        self,
        num_requests: int,
        concurrent: int = 10,
        user_ids: List[Optional[str]] = None,
        limit: int = 15
    ) -> Dict:
        """
        Args:
            num_requests: Total number of requests
            concurrent: Number of concurrent requests
            user_ids: Requesters to cycle through; None entries hit the public feed
            limit: Slots per feed
        """
        user_ids = user_ids or [None]
        results = []
        start_time = time.time()
        
        print(f"\nRunning load test: {num_requests} requests, {concurrent} concurrent, {limit} slots")
        
        with ThreadPoolExecutor(max_workers=concurrent) as executor:
            futures = [
                executor.submit(self.fetch_feed, user_ids[i % len(user_ids)], limit)
                for i in range(num_requests)
            ]
            for completed, future in enumerate(as_completed(futures), start=1):
                try:
                    results.append(future.result())
                except requests.RequestException as e:
                    results.append({"status_code": 0, "response_time": 0, "success": False, "error": str(e)})
                if completed % 50 == 0:
                    print(f"  Completed: {completed}/{num_requests}")
        
        total_time = time.time() - start_time
        response_times = [r["response_time"] for r in results if r.get("response_time", 0) > 0]
        success_count = sum(1 for r in results if r["success"])
        
        pools = Counter()
        duplicate_feeds = 0
        short_feeds = 0
        for r in results:
            if not r["success"]:
                continue
            item_ids = [s["item_id"] for s in r["data"]["slots"]]
            duplicate_feeds += len(item_ids) != len(set(item_ids))
            short_feeds += len(item_ids) < limit
            pools.update(s["pool"] for s in r["data"]["slots"])
        
        return {
            "total_requests": num_requests,
            "successful_requests": success_count,
            "failed_requests": num_requests - success_count,
            "total_time_seconds": total_time,
            "requests_per_second": num_requests / total_time if total_time > 0 else 0,
            "response_times": {
                "mean": statistics.mean(response_times) if response_times else 0,
                "median": statistics.median(response_times) if response_times else 0,
                "p95": percentile(response_times, 0.95),
                "p99": percentile(response_times, 0.99),
            },
            "pool_counts": dict(pools),
            "duplicate_feeds": duplicate_feeds,
            "short_feeds": short_feeds,
        }
    
    def print_results(self, label: str, stats: Dict):
        print("\n" + "=" * 60)
        print(f"Load Test Results: {label}")
        print("=" * 60)
        print(f"Total Requests:     {stats['total_requests']}")
        print(f"Successful:         {stats['successful_requests']}")
        print(f"Failed:             {stats['failed_requests']}")
        print(f"Requests/Second:    {stats['requests_per_second']:.2f}")
        rt = stats['response_times']
        print(f"\nLatency mean/median/p95/p99: "
              f"{rt['mean']:.3f}s / {rt['median']:.3f}s / {rt['p95']:.3f}s / {rt['p99']:.3f}s")
        
        total_slots = sum(stats['pool_counts'].values())
        print(f"\nServed pools ({total_slots} slots):")
        for pool, count in sorted(stats['pool_counts'].items()):
            print(f"  {pool:<14}{count / max(total_slots, 1):.3f}")
        print(f"\nFeeds with duplicates: {stats['duplicate_feeds']}")
        print(f"Short feeds:           {stats['short_feeds']}")
        print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description='Load test the feed API')
    parser.add_argument('--url', type=str, default='http://localhost:8000', help='Base URL of the API')
    parser.add_argument('--mode', type=str, choices=['personalized', 'public', 'both'], default='both')
    parser.add_argument('--requests', type=int, default=200, help='Total number of requests')
    parser.add_argument('--concurrent', type=int, default=10, help='Number of concurrent requests')
    parser.add_argument('--limit', type=int, default=15, help='Slots per feed')
    parser.add_argument('--user-ids', type=str, default='u00000,u00001,u00002',
                        help='Comma-separated requester ids for the personalized feed')
    parser.add_argument('--output', type=str, default=None, help='Output file for JSON results')
    args = parser.parse_args()
    
    tester = FeedLoadTester(base_url=args.url)
    
    print("Checking API health...")
    if not tester.test_health():
        print("❌ API health check failed. Is the server running?")
        return 1
    print("✅ API is healthy\n")
    
    results = {}
    if args.mode in ['personalized', 'both']:
        user_ids = [x.strip() for x in args.user_ids.split(',') if x.strip()]
        results['personalized'] = tester.run_load_test(args.requests, args.concurrent, user_ids, args.limit)
        tester.print_results('/feed', results['personalized'])
    
    if args.mode in ['public', 'both']:
        results['public'] = tester.run_load_test(args.requests, args.concurrent, [None], args.limit)
        tester.print_results('/feed/public', results['public'])
    
    if args.output:
        with open(args.output, 'w') as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to {args.output}")
    
    return 0


if __name__ == '__main__':
    import sys
    sys.exit(main())
