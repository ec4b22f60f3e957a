# mailer.py
"""Transactional email through the Brevo HTTP API (no SMTP)."""
from html import escape
from typing import Iterable, Mapping

import requests

from kspice.config import BREVO_API_KEY, MAIL_SENDER_EMAIL, MAIL_SENDER_NAME, OTP_EXPIRE_MINUTES
from kspice.logger import logger

BREVO_URL = "https://api.brevo.com/v3/smtp/email"

PAYMENT_METHOD_LABELS = {
    "cod": "Tiền mặt",
    "bank_transfer": "Chuyển khoản ngân hàng",
    "e_wallet": "Ví điện tử",
}

OTP_SUBJECTS = {
    "signup": "Mã xác thực đăng ký tài khoản K-Spice",
    "reset_password": "Mã xác thực đặt lại mật khẩu K-Spice",
}

OTP_INTROS = {
    "signup": "Cảm ơn bạn đã đăng ký tài khoản tại K-Spice. Vui lòng sử dụng mã OTP dưới đây để hoàn tất đăng ký:",
    "reset_password": "Bạn vừa yêu cầu đặt lại mật khẩu tài khoản K-Spice. Vui lòng sử dụng mã OTP dưới đây:",
}


class EmailDeliveryError(Exception):
    pass


def format_vnd(amount: int) -> str:
    """150000 -> '150.000 ₫' (vi-VN currency format)."""
    return f"{int(amount):,}".replace(",", ".") + " ₫"


def send_email_via_brevo(to_email: str, subject: str, html_content: str):
    headers = {
        "accept": "application/json",
        "api-key": BREVO_API_KEY,
        "content-type": "application/json",
    }
    payload = {
        "sender": {"name": MAIL_SENDER_NAME, "email": MAIL_SENDER_EMAIL},
        "to": [{"email": to_email}],
        "subject": subject,
        "htmlContent": html_content,
    }

    try:
        response = requests.post(BREVO_URL, json=payload, headers=headers, timeout=10)
    except requests.RequestException as e:
        logger.error(f"Exception sending email to {to_email}: {e}")
        raise EmailDeliveryError(str(e)) from e

    if response.status_code != 201:
        logger.error(f"Error sending email to {to_email}: {response.status_code} {response.text}")
        raise EmailDeliveryError(f"Brevo responded {response.status_code}")
    logger.info(f"Email sent to {to_email}: {subject}")


def render_otp_email(otp_code: str, purpose: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
      <h1 style="color: #d32f2f; text-align: center;">K-Spice Restaurant</h1>
      <div style="background-color: #f5f5f5; padding: 30px; border-radius: 10px; margin: 20px 0;">
        <h2 style="color: #333; margin-bottom: 20px;">Mã xác thực của bạn</h2>
        <p style="color: #666; font-size: 16px; line-height: 1.5;">{OTP_INTROS[purpose]}</p>
        <div style="background-color: #fff; padding: 20px; border-radius: 8px; text-align: center; margin: 20px 0;">
          <h1 style="color: #d32f2f; font-size: 36px; letter-spacing: 8px; margin: 0;">{otp_code}</h1>
        </div>
        <p style="color: #666; font-size: 14px; line-height: 1.5;">
          Mã OTP này có hiệu lực trong <strong>{OTP_EXPIRE_MINUTES} phút</strong>. Vui lòng không chia sẻ mã này với bất kỳ ai.
        </p>
      </div>
      <p style="color: #999; font-size: 12px; text-align: center;">
        Nếu bạn không thực hiện yêu cầu này, vui lòng bỏ qua email này.
      </p>
    </div>
    """


def send_otp_email(to_email: str, otp_code: str, purpose: str):
    send_email_via_brevo(to_email, OTP_SUBJECTS[purpose], render_otp_email(otp_code, purpose))


def render_invoice_email(
    order_number: str,
    full_name: str,
    phone: str,
    address: str,
    items: Iterable[Mapping],
    total_amount: int,
    payment_method: str,
) -> str:
    payment_text = PAYMENT_METHOD_LABELS.get(payment_method, PAYMENT_METHOD_LABELS["cod"])
    rows = "".join(
        f"""
        <tr>
          <td style="padding: 12px; border-bottom: 1px solid #eee;">{escape(item["name"])}</td>
          <td style="padding: 12px; border-bottom: 1px solid #eee; text-align: center;">{item["quantity"]}</td>
          <td style="padding: 12px; border-bottom: 1px solid #eee; text-align: right;">{format_vnd(item["price"])}</td>
          <td style="padding: 12px; border-bottom: 1px solid #eee; text-align: right; font-weight: bold;">{format_vnd(item["subtotal"])}</td>
        </tr>"""
        for item in items
    )
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 700px; margin: 0 auto; padding: 20px;">
      <div style="text-align: center; margin-bottom: 30px;">
        <h1 style="color: #d32f2f; margin: 0;">K-Spice Restaurant</h1>
        <p style="color: #666; margin: 5px 0;">Hóa đơn điện tử</p>
      </div>
      <div style="background-color: #f5f5f5; padding: 20px; border-radius: 8px; margin-bottom: 20px;">
        <h2 style="color: #333; margin-top: 0;">Đơn hàng #{escape(order_number)}</h2>
        <p style="margin: 5px 0; color: #666;"><strong>Khách hàng:</strong> {escape(full_name)}</p>
        <p style="margin: 5px 0; color: #666;"><strong>Số điện thoại:</strong> {escape(phone)}</p>
        <p style="margin: 5px 0; color: #666;"><strong>Địa chỉ:</strong> {escape(address)}</p>
        <p style="margin: 5px 0; color: #666;"><strong>Thanh toán:</strong> {payment_text}</p>
      </div>
      <table style="width: 100%; border-collapse: collapse; margin-bottom: 20px; background-color: white;">
        <thead>
          <tr style="background-color: #d32f2f; color: white;">
            <th style="padding: 12px; text-align: left;">Sản phẩm</th>
            <th style="padding: 12px; text-align: center;">Số lượng</th>
            <th style="padding: 12px; text-align: right;">Đơn giá</th>
            <th style="padding: 12px; text-align: right;">Thành tiền</th>
          </tr>
        </thead>
        <tbody>{rows}
        </tbody>
        <tfoot>
          <tr style="background-color: #f5f5f5;">
            <td colspan="3" style="padding: 15px; text-align: right; font-weight: bold; font-size: 18px;">Tổng cộng:</td>
            <td style="padding: 15px; text-align: right; font-weight: bold; font-size: 18px; color: #d32f2f;">{format_vnd(total_amount)}</td>
          </tr>
        </tfoot>
      </table>
      <div style="background-color: #fff3cd; padding: 15px; border-radius: 8px; border-left: 4px solid #ffc107; margin-bottom: 20px;">
        <p style="margin: 0; color: #856404;">
          <strong>Lưu ý:</strong> Đơn hàng của bạn đang được xử lý. Chúng tôi sẽ liên hệ với bạn sớm nhất để xác nhận và giao hàng.
        </p>
      </div>
      <div style="text-align: center; color: #999; font-size: 12px; margin-top: 30px; padding-top: 20px; border-top: 1px solid #eee;">
        <p>Cảm ơn bạn đã tin tưởng K-Spice!</p>
      </div>
    </div>
    """


def send_invoice_email(to_email: str, order_number: str, **invoice):
    html_content = render_invoice_email(order_number=order_number, **invoice)
    send_email_via_brevo(to_email, f"Hóa đơn đơn hàng #{order_number} - K-Spice", html_content)


def send_invoice_in_background(to_email: str, order_number: str, **invoice):
    """BackgroundTasks entry point: a failed invoice never fails the order."""
    try:
        send_invoice_email(to_email, order_number, **invoice)
    except EmailDeliveryError as e:
        logger.warning(f"Invoice for order {order_number} not delivered: {e}")
