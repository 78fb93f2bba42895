from prometheus_client import Counter, Gauge, Histogram

# --- Remote cache ---
STORE_CALLS = Counter('videocache_store_calls_total', 'Store calls issued to the cache server', ['outcome'])
STORE_LATENCY = Histogram('videocache_store_latency_seconds', 'Store call latency in seconds', buckets=[0.010, 0.025, 0.050, 0.100, 0.250, 0.500, 1.0])
BATCH_SIZE = Histogram('videocache_batch_size', 'Bids per store call', buckets=[1, 2, 5, 10, 25, 50, 100])
BIDS_CACHED = Counter('videocache_bids_cached_total', 'Bids admitted with a cache key')
BIDS_DISCARDED = Counter('videocache_bids_discarded_total', 'Video bids dropped by the cache', ['reason'])

# --- Local cache ---
LOCAL_ENTRIES = Gauge('videocache_local_entries', 'VAST data URIs held in process across all local caches')
LOCAL_RESOLVES = Counter('videocache_local_resolves_total', 'Ad server wrapper combinations', ['outcome'])
