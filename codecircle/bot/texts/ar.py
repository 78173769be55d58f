TEXTS_AR: dict[str, str] = {
    "msg.codes.waiting": "📬 لديك {count} أكواد جديدة اليوم. افتح قائمة أكواد اليوم لعرضها.",
    "msg.usage.confirm_request": "🔔 قام {viewer_name} باستخدام كودك لليوم {day_number}. يرجى التأكيد.",
    "msg.usage.disputed": "⚠️ صاحب الكود أفاد بأن الكود لم يُستخدم. سيتم احتسابه كغير مستخدم.",
    "msg.penalty.warning": "⚠️ تنبيه: لم تستخدم أكوادك بالأمس. التكرار سيؤدي إلى إيقاف أكوادك.",
    "msg.penalty.confirmation_warning": "⚠️ تنبيه: لم تؤكد استخدام أكوادك بالأمس. التكرار سيؤدي إلى إيقاف أكوادك.",
    "msg.penalty.suspended": "⛔ تم إيقاف {codes_total} من أكوادك لمدة {suspension_days} أيام بسبب عدم الالتزام.",
    "msg.penalty.deleted": "❌ تم حذف حسابك وكل أكوادك بسبب تكرار عدم الالتزام.",
    "msg.codes.reactivated": "✅ تم إعادة تفعيل أكوادك الموقوفة.",
}
