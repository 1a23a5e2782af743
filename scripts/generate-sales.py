#!/usr/bin/env python3
"""
Sales traffic generator for the POS service
Simulates store tills ringing up orders, taking payments and checking the dashboard
"""

import requests
import random
import time
import threading
from datetime import datetime
from decimal import Decimal

API_URL = "http://localhost:8000"
AUTH_TOKENS = ["cashier-token-123", "manager-token-456"]

PAYMENT_MODES = ["cash", "card", "store_credit"]

# Weight for actions
ACTION_WEIGHTS = {
    "sale": 0.5,
    "settle_order": 0.2,
    "browse": 0.2,
    "dashboard": 0.1,
}

def get_headers(token):
    return {"Authorization": f"Bearer {token}"}

def log(message):
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] {message}")

class Till:
    def __init__(self, till_id, token):
        self.till_id = till_id
        self.token = token
        self.products = []
        self.customers = []
        self.open_orders = []

    def _get(self, path, timeout=5):
        return requests.get(f"{API_URL}{path}", headers=get_headers(self.token), timeout=timeout)

    def _post(self, path, payload, timeout=10):
        return requests.post(f"{API_URL}{path}", json=payload, headers=get_headers(self.token), timeout=timeout)

    def fetch_products(self):
        try:
            response = self._get("/api/products")
            if response.status_code == 200:
                self.products = [p for p in response.json() if p["stock"] > 0]
                log(f"Till {self.till_id}: Fetched {len(self.products)} products in stock")
                return True
        except Exception as e:
            log(f"Till {self.till_id}: Failed to fetch products - {e}")
        return False

    def register_customer(self):
        suffix = random.randint(10000, 99999)
        try:
            response = self._post("/api/customers", {
                "firstName": random.choice(["Ada", "Grace", "Alan", "Linus", "Barbara"]),
                "lastName": random.choice(["Smith", "Nguyen", "Okafor", "Garcia", "Kowalski"]),
                "email": f"walkin{suffix}@example.com",
            })
            if response.status_code == 201:
                customer = response.json()
                self.customers.append(customer["id"])
                log(f"Till {self.till_id}: Registered customer {customer['id']}")
                return customer["id"]
            log(f"Till {self.till_id}: Customer registration failed - {response.status_code}")
        except Exception as e:
            log(f"Till {self.till_id}: Customer registration failed - {e}")
        return None

    def browse(self):
        if not self.products:
            self.fetch_products()

        if self.products:
            product = random.choice(self.products)
            try:
                response = self._get(f"/api/products/{product['id']}")
                if response.status_code == 200:
                    log(f"Till {self.till_id}: Looked up {product['name']}")
                    return True
            except Exception as e:
                log(f"Till {self.till_id}: Failed to look up product - {e}")
        return False

    def sale(self):
        if not self.products:
            self.fetch_products()
        if not self.products:
            return False

        if not self.customers or random.random() < 0.3:
            customer_id = self.register_customer()
        else:
            customer_id = random.choice(self.customers)
        if customer_id is None:
            return False

        cart = [
            {"productId": product["id"], "quantity": random.randint(1, 3)}
            for product in random.sample(self.products, k=min(len(self.products), random.randint(1, 3)))
        ]

        try:
            response = self._post("/api/orders", {"customerId": customer_id, "cartItems": cart})
            if response.status_code == 201:
                order_id = response.json()["orderId"]
                log(f"Till {self.till_id}: Sale recorded - Order {order_id} ({len(cart)} lines)")
                self.take_payment(order_id)
                return True
            # Out of stock is expected once the demo catalogue runs low
            log(f"Till {self.till_id}: Sale rejected - {response.json().get('detail')}")
            self.fetch_products()
        except Exception as e:
            log(f"Till {self.till_id}: Sale failed - {e}")
        return False

    def take_payment(self, order_id):
        try:
            balance = Decimal(self._get(f"/api/functions/order-balance/{order_id}").json()["balance"])
            if balance <= 0:
                return True

            # Some customers pay in instalments
            if random.random() < 0.3:
                amount = (balance / 2).quantize(Decimal("0.01"))
                self.open_orders.append(order_id)
            else:
                amount = balance

            response = self._post(f"/api/orders/{order_id}/payments", {
                "amount": str(amount),
                "paymentMode": random.choice(PAYMENT_MODES),
                "status": "completed",
            })
            if response.status_code == 201:
                log(f"Till {self.till_id}: Payment of {amount} taken for order {order_id}")
                return True
            log(f"Till {self.till_id}: Payment rejected - {response.status_code}")
        except Exception as e:
            log(f"Till {self.till_id}: Payment failed - {e}")
        return False

    def settle_order(self):
        if not self.open_orders:
            return False
        order_id = self.open_orders.pop(0)

        # Occasionally the cashier keys in too much and the ledger must refuse it
        if random.random() < 0.1:
            try:
                response = self._post(f"/api/orders/{order_id}/payments", {"amount": "99999.00", "paymentMode": "cash"})
                log(f"Till {self.till_id}: Overpayment attempt on order {order_id} -> {response.status_code}")
            except Exception as e:
                log(f"Till {self.till_id}: Overpayment attempt failed - {e}")

        return self.take_payment(order_id)

    def dashboard(self):
        try:
            response = self._get("/api/dashboard/stats")
            if response.status_code == 200:
                stats = response.json()
                log(f"Till {self.till_id}: Dashboard - {stats['totalOrders']} orders, revenue {stats['totalRevenue']}")
                return True
        except Exception as e:
            log(f"Till {self.till_id}: Failed to load dashboard - {e}")
        return False

    def random_action(self):
        action = random.choices(
            list(ACTION_WEIGHTS.keys()),
            weights=list(ACTION_WEIGHTS.values())
        )[0]
        return getattr(self, action)()

def till_session(till_id, duration_seconds):
    """Run one till until its shift ends."""
    till = Till(till_id, random.choice(AUTH_TOKENS))
    end_time = time.time() + duration_seconds

    till.fetch_products()
    while time.time() < end_time:
        till.random_action()
        time.sleep(random.uniform(0.5, 2.0))

    # Close out instalment orders before the shift ends
    while till.open_orders:
        till.settle_order()

def generate_sales(num_tills=3, shift_duration=60):
    """Generate sales with multiple concurrent tills"""
    log(f"Starting sales generation with {num_tills} tills")
    log(f"Shift duration: {shift_duration} seconds")

    threads = []
    till_index = 0

    try:
        while True:
            while len([t for t in threads if t.is_alive()]) < num_tills:
                till_index += 1
                thread = threading.Thread(
                    target=till_session,
                    args=(f"till-{till_index}", shift_duration)
                )
                thread.start()
                threads.append(thread)
                time.sleep(random.uniform(1, 3))

            threads = [t for t in threads if t.is_alive()]
            time.sleep(5)

    except KeyboardInterrupt:
        log("\nStopping sales generation...")
        log("Waiting for active tills to close...")
        for thread in threads:
            thread.join(timeout=10)
        log("Sales generation stopped")

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Generate sales traffic for the POS service")
    parser.add_argument(
        "--tills",
        type=int,
        default=3,
        help="Number of concurrent tills (default: 3)"
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Shift duration in seconds (default: 60)"
    )
    parser.add_argument(
        "--url",
        type=str,
        default="http://localhost:8000",
        help="API URL (default: http://localhost:8000)"
    )

    args = parser.parse_args()
    API_URL = args.url

    log("=" * 60)
    log("POS Sales Generator")
    log("=" * 60)
    log(f"API URL: {API_URL}")
    log(f"Tills: {args.tills}")
    log(f"Shift Duration: {args.duration}s")
    log("=" * 60)

    generate_sales(args.tills, args.duration)
