# purrfectcare/services/khalti_service.py
import logging
from typing import Dict, Any, Optional

import requests
from flask import Flask

from purrfectcare.core.errors import PaymentGatewayError

class KhaltiService:
    """
    Khalti ePayment(v2) 게이트웨이 클라이언트.
    - initiate: 결제 세션을 만들고 사용자를 보낼 payment_url을 받습니다.
    - lookup: 콜백 이후 pidx로 실제 결제 상태를 서버에서 다시 확인합니다.
    """
    TIMEOUT_SECONDS = 15

    def __init__(self):
        self.api_key: Optional[str] = None
        self.api_url: Optional[str] = None
        self.return_url: Optional[str] = None
        self.website_url: Optional[str] = None

    def init_app(self, app: Flask):
        self.api_key = app.config.get('KHALTI_API_KEY')
        self.api_url = (app.config.get('KHALTI_API_URL') or '').rstrip('/')
        self.return_url = app.config.get('KHALTI_RETURN_URL')
        self.website_url = app.config.get('APP_URL')
        if not self.api_key:
            logging.warning("KhaltiService: KHALTI_API_KEY가 설정되지 않았습니다. 온라인 결제가 실패합니다.")

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise PaymentGatewayError("Payment gateway is not configured")
        try:
            response = requests.post(
                f"{self.api_url}{path}",
                json=payload,
                headers={"Authorization": f"Key {self.api_key}"},
                timeout=self.TIMEOUT_SECONDS
            )
        except requests.RequestException as e:
            logging.error(f"Khalti request failed ({path}): {e}", exc_info=True)
            raise PaymentGatewayError("Payment gateway is unreachable")

        if response.status_code >= 400:
            logging.error(f"Khalti responded {response.status_code} for {path}: {response.text}")
            raise PaymentGatewayError("Payment initiation failed")
        return response.json()

    def initiate_payment(self, order_id: str, amount: float, customer: Dict[str, Any]) -> Dict[str, Any]:
        """
        결제 세션을 생성합니다. Khalti는 금액을 paisa(1/100 NPR) 단위 정수로 받습니다.

        :return: {pidx, payment_url, expires_at}
        """
        payload = {
            "return_url": self.return_url,
            "website_url": self.website_url,
            "amount": int(round(amount * 100)),
            "purchase_order_id": order_id,
            "purchase_order_name": f"Order {order_id}",
            "customer_info": {
                "name": customer.get('name'),
                "email": customer.get('email'),
                "phone": customer.get('phone_number')
            }
        }
        data = self._post('/epayment/initiate/', payload)
        logging.info(f"Khalti payment initiated for order {order_id} (pidx: {data.get('pidx')})")
        return {
            "pidx": data.get('pidx'),
            "payment_url": data.get('payment_url'),
            "expires_at": data.get('expires_at')
        }

    def lookup_payment(self, pidx: str) -> Dict[str, Any]:
        """pidx로 결제 상태를 조회합니다. status 값 예: Completed, Pending, User canceled, Expired"""
        return self._post('/epayment/lookup/', {"pidx": pidx})
